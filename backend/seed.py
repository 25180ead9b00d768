#!/usr/bin/env python3
"""
Kanban Hub — Demo data seeder

Creates a company with two users and one project whose board holds a few
ordered columns and cards. Writes go through the same services the API uses,
so positions come out dense.

Usage:
    python seed.py
    python seed.py --company "Acme" --cards 12 --seed 7
"""
import argparse
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from auth import AuthService, CurrentUser
from database import get_db_context, init_db
from models import CardPriority, Company, User, UserRole
from services import kanban
from services.projects import add_member, create_project

logger = logging.getLogger("kanban-hub.seed")

DEFAULT_PASSWORD = "KanbanDemo2024!"
COLUMN_TITLES = ["A Fazer", "Em Progresso", "Revisão", "Concluído"]
CARD_TITLES = [
    "Configurar ambiente", "Revisar contrato", "Planejar sprint", "Atualizar documentação",
    "Corrigir relatório", "Preparar apresentação", "Migrar planilhas", "Treinar equipe",
    "Auditar acessos", "Publicar release",
]


def _current_user(user: User) -> CurrentUser:
    return CurrentUser(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        company_id=user.company_id,
        role=user.role.value if isinstance(user.role, UserRole) else user.role,
        is_active=True,
    )


async def _get_or_create_user(db, email: str, name: str, company_id: str, role: UserRole) -> User:
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user:
        return user
    user = User(
        email=email,
        display_name=name,
        password_hash=AuthService.hash_password(DEFAULT_PASSWORD),
        company_id=company_id,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def seed_demo(company_name: str = "Demo Company", cards: int = 8, seed: int = 42) -> dict:
    """Seed one company, project and board; returns the created ids"""
    rng = random.Random(seed)
    now = datetime.now(timezone.utc)

    async with get_db_context() as db:
        company = Company(name=company_name)
        db.add(company)
        await db.commit()

        slug = company.id[:8]
        owner = await _get_or_create_user(
            db, f"owner-{slug}@kanban-hub.dev", "Ana Souza", company.id, UserRole.MANAGER,
        )
        member = await _get_or_create_user(
            db, f"member-{slug}@kanban-hub.dev", "Bruno Lima", company.id, UserRole.USER,
        )
        actor = _current_user(owner)

        project = await create_project(db, actor, "Projeto Demo", "Projeto de demonstração")
        await add_member(db, project.id, member.id, actor)
        board = await kanban.create_board(db, project.id, "Quadro Principal")

        columns = [await kanban.create_column(db, board.id, title) for title in COLUMN_TITLES]
        for index in range(cards):
            column = rng.choice(columns)
            await kanban.create_card(
                db,
                board.id,
                column.id,
                CARD_TITLES[index % len(CARD_TITLES)],
                reporter_id=owner.id,
                priority=rng.choice(list(CardPriority)),
                assigned_user_id=member.id if rng.random() > 0.5 else None,
                due_date=now + timedelta(days=rng.randint(-2, 10)),
                actor_name=owner.display_name,
            )

        logger.info(f"Seeded company {company.id} with {cards} cards on board {board.id}")
        return {
            "company_id": company.id,
            "owner_id": owner.id,
            "member_id": member.id,
            "project_id": project.id,
            "board_id": board.id,
            "column_ids": [c.id for c in columns],
        }


def main():
    parser = argparse.ArgumentParser(description="Kanban Hub demo data seeder")
    parser.add_argument("--company", type=str, default="Demo Company", help="Company name")
    parser.add_argument("--cards", type=int, default=8, help="Number of cards")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s %(message)s")

    async def _run():
        await init_db()
        return await seed_demo(args.company, args.cards, args.seed)

    ids = asyncio.run(_run())
    print(f"Seeded project {ids['project_id']} (board {ids['board_id']})")
    print(f"   Login: owner-{ids['company_id'][:8]}@kanban-hub.dev / {DEFAULT_PASSWORD}")


if __name__ == "__main__":
    main()
