# tests/test_transfers.py — Ownership transfer, board/card moves, cloning, history
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

import services.notifications
from models import Board, Card, CardTag, Notification, Project, ProjectMember, Tag, TransferLog
from services.projects import user_owns_project
from tests.conftest import get_auth_headers, make_board, make_cards, make_project

API = "/api/v1/transfers"


async def log_rows(db_session):
    result = await db_session.execute(select(TransferLog).order_by(TransferLog.created_at))
    return result.scalars().all()


async def card_order(db_session, column_id):
    rows = await db_session.execute(
        select(Card.title, Card.position).where(Card.column_id == column_id).order_by(Card.position)
    )
    return [tuple(r) for r in rows.all()]


async def owner_of(db_session, project_id):
    return (await db_session.execute(select(Project.owner_id).where(Project.id == project_id))).scalar_one()


# ============================================================
# OWNERSHIP
# ============================================================

@pytest.mark.asyncio
async def test_transfer_ownership(client: AsyncClient, db_session, test_user, second_user, test_project):
    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": second_user.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["owner_id"] == second_user.id
    assert await owner_of(db_session, test_project.id) == second_user.id

    rows = await log_rows(db_session)
    assert len(rows) == 1
    log = rows[0]
    assert log.type.value == "ownership_transfer"
    assert (log.from_type, log.from_id) == ("user", test_user.id)
    assert (log.to_type, log.to_id) == ("user", second_user.id)
    assert log.user_id == test_user.id

    notes = (await db_session.execute(
        select(Notification).where(Notification.user_id == second_user.id)
    )).scalars().all()
    assert len(notes) == 1
    assert notes[0].title == "Projeto Transferido"
    assert notes[0].priority.value == "high"


@pytest.mark.asyncio
async def test_transfer_survives_notification_failure(
    client: AsyncClient, db_session, monkeypatch, test_user, second_user, test_project,
):
    async def failing_create(*args, **kwargs):
        raise SQLAlchemyError("notifications table unavailable")

    monkeypatch.setattr(services.notifications, "create_notification", failing_create)

    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": second_user.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    assert await owner_of(db_session, test_project.id) == second_user.id
    assert len(await log_rows(db_session)) == 1
    notes = (await db_session.execute(select(Notification))).scalars().all()
    assert notes == []


@pytest.mark.asyncio
async def test_previous_owner_loses_ownership(
    client: AsyncClient, db_session, test_user, second_user, manager_user, test_project,
):
    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": second_user.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    assert not await user_owns_project(db_session, test_user.id, test_project.id)
    assert await user_owns_project(db_session, second_user.id, test_project.id)

    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": manager_user.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 403
    assert await owner_of(db_session, test_project.id) == second_user.id
    assert len(await log_rows(db_session)) == 1


@pytest.mark.asyncio
async def test_transfer_ownership_by_non_owner_is_forbidden(
    client: AsyncClient, db_session, test_user, second_user, test_project,
):
    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": second_user.id},
        headers=get_auth_headers(second_user),
    )
    assert resp.status_code == 403
    assert await owner_of(db_session, test_project.id) == test_user.id
    assert await log_rows(db_session) == []


@pytest.mark.asyncio
async def test_transfer_ownership_to_self_is_rejected(client: AsyncClient, db_session, test_user, test_project):
    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": test_user.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot transfer to yourself"
    assert await log_rows(db_session) == []


@pytest.mark.asyncio
async def test_transfer_ownership_to_other_company_is_404(client: AsyncClient, test_user, outsider, test_project):
    resp = await client.put(
        f"{API}/projects/{test_project.id}/ownership",
        json={"newOwnerId": outsider.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_transfer_ownership_missing_project(client: AsyncClient, test_user, second_user):
    resp = await client.put(
        f"{API}/projects/nope/ownership",
        json={"new_owner_id": second_user.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 404


# ============================================================
# BOARD MOVE
# ============================================================

@pytest.mark.asyncio
async def test_move_board(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, _ = test_board
    target = await make_project(db_session, test_user, "Target")

    resp = await client.put(
        f"{API}/boards/{board.id}/move",
        json={"targetProjectId": target.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["project_id"] == target.id

    project_id = (await db_session.execute(select(Board.project_id).where(Board.id == board.id))).scalar_one()
    assert project_id == target.id

    rows = await log_rows(db_session)
    assert len(rows) == 1
    assert rows[0].type.value == "board_move"
    assert (rows[0].from_id, rows[0].from_title) == (test_project.id, "Test Project")
    assert (rows[0].to_id, rows[0].to_title) == (target.id, "Target")


@pytest.mark.asyncio
async def test_move_board_to_same_project_is_rejected(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, _ = test_board
    resp = await client.put(
        f"{API}/boards/{board.id}/move",
        json={"targetProjectId": test_project.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 400
    assert await log_rows(db_session) == []


@pytest.mark.asyncio
async def test_move_board_requires_source_ownership(
    client: AsyncClient, db_session, test_user, second_user, test_project, test_board,
):
    board, _ = test_board
    db_session.add(ProjectMember(project_id=test_project.id, user_id=second_user.id))
    await db_session.commit()
    target = await make_project(db_session, second_user, "Mine")

    resp = await client.put(
        f"{API}/boards/{board.id}/move",
        json={"targetProjectId": target.id},
        headers=get_auth_headers(second_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_move_board_requires_target_access(
    client: AsyncClient, db_session, test_user, second_user, test_board,
):
    board, _ = test_board
    foreign = await make_project(db_session, second_user, "Not yours")
    resp = await client.put(
        f"{API}/boards/{board.id}/move",
        json={"targetProjectId": foreign.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 403

    resp = await client.put(
        f"{API}/boards/{board.id}/move",
        json={"targetProjectId": "missing"},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 404


# ============================================================
# CARD MOVE
# ============================================================

@pytest.mark.asyncio
async def test_move_card_to_other_board_appends(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, (todo, _, _) = test_board
    a, b, c = await make_cards(db_session, todo, ["A", "B", "C"])
    target_board, (inbox, later) = await make_board(db_session, test_project, "Target", columns=("Inbox", "Later"))
    await make_cards(db_session, inbox, ["X", "Y"])

    resp = await client.put(
        f"{API}/cards/{b.id}/move",
        json={"targetBoardId": target_board.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["board_id"] == target_board.id
    assert data["column_id"] == inbox.id
    assert data["position"] == 2

    assert await card_order(db_session, todo.id) == [("A", 0), ("C", 1)]
    assert await card_order(db_session, inbox.id) == [("X", 0), ("Y", 1), ("B", 2)]

    rows = await log_rows(db_session)
    assert len(rows) == 1
    assert rows[0].type.value == "card_move"
    assert rows[0].from_id == board.id
    assert rows[0].to_id == target_board.id
    assert rows[0].from_title == "Test Board (Test Project)"
    assert rows[0].to_title == "Target (Test Project)"


@pytest.mark.asyncio
async def test_move_card_to_explicit_column(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, (todo, _, _) = test_board
    a, = await make_cards(db_session, todo, ["A"])
    target_board, (inbox, later) = await make_board(db_session, test_project, "Target", columns=("Inbox", "Later"))

    resp = await client.put(
        f"{API}/cards/{a.id}/move",
        json={"targetBoardId": target_board.id, "targetColumnId": later.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    assert await card_order(db_session, later.id) == [("A", 0)]


@pytest.mark.asyncio
async def test_move_card_to_board_without_columns(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, (todo, _, _) = test_board
    a, = await make_cards(db_session, todo, ["A"])
    empty_board, _ = await make_board(db_session, test_project, "Empty", columns=())

    resp = await client.put(
        f"{API}/cards/{a.id}/move",
        json={"targetBoardId": empty_board.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Target board has no columns"
    assert await card_order(db_session, todo.id) == [("A", 0)]
    assert await log_rows(db_session) == []


@pytest.mark.asyncio
async def test_move_card_column_not_on_target_board(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, (todo, doing, _) = test_board
    a, = await make_cards(db_session, todo, ["A"])
    target_board, _ = await make_board(db_session, test_project, "Target", columns=("Inbox",))

    resp = await client.put(
        f"{API}/cards/{a.id}/move",
        json={"targetBoardId": target_board.id, "targetColumnId": doing.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_move_card_without_source_access(client: AsyncClient, db_session, second_user, test_board):
    board, (todo, _, _) = test_board
    a, = await make_cards(db_session, todo, ["A"])
    own_project = await make_project(db_session, second_user, "Own")
    own_board, _ = await make_board(db_session, own_project, "Own board", columns=("Inbox",))

    resp = await client.put(
        f"{API}/cards/{a.id}/move",
        json={"targetBoardId": own_board.id},
        headers=get_auth_headers(second_user),
    )
    assert resp.status_code == 403


# ============================================================
# CLONE
# ============================================================

@pytest.mark.asyncio
async def test_clone_card_leaves_source_untouched(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, (todo, _, _) = test_board
    a, b = await make_cards(db_session, todo, ["A", "B"])
    target_board, (inbox,) = await make_board(db_session, test_project, "Target", columns=("Inbox",))
    await make_cards(db_session, inbox, ["X"])

    resp = await client.post(
        f"{API}/cards/{a.id}/clone",
        json={"targetBoardId": target_board.id},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["id"] != a.id
    assert data["title"] == "A (cópia)"
    assert data["status"] == "novo"
    assert data["position"] == 1
    assert data["reporter_id"] == test_user.id
    assert data["tags"] == []

    assert await card_order(db_session, todo.id) == [("A", 0), ("B", 1)]
    assert await card_order(db_session, inbox.id) == [("X", 0), ("A (cópia)", 1)]

    rows = await log_rows(db_session)
    assert len(rows) == 1
    assert rows[0].type.value == "card_clone"
    assert rows[0].entity_id == data["id"]
    assert (rows[0].from_type, rows[0].from_id) == ("card", a.id)
    assert (rows[0].to_type, rows[0].to_id) == ("board", target_board.id)
    assert rows[0].to_title == "Target (Test Project)"


@pytest.mark.asyncio
async def test_clone_card_copies_tags_on_request(client: AsyncClient, db_session, test_user, test_company, test_project, test_board):
    board, (todo, _, _) = test_board
    a, = await make_cards(db_session, todo, ["A"])
    tag = Tag(company_id=test_company.id, name="urgent", color="#ef4444")
    db_session.add(tag)
    await db_session.flush()
    db_session.add(CardTag(card_id=a.id, tag_id=tag.id))
    await db_session.commit()

    resp = await client.post(
        f"{API}/cards/{a.id}/clone",
        json={"targetBoardId": board.id, "copyTags": True},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert [t["name"] for t in data["tags"]] == ["urgent"]
    assert data["column_id"] == todo.id
    assert await card_order(db_session, todo.id) == [("A", 0), ("A (cópia)", 1)]

    tag_links = (await db_session.execute(select(func.count()).select_from(CardTag))).scalar()
    assert tag_links == 2


# ============================================================
# HISTORY / TARGETS
# ============================================================

@pytest.mark.asyncio
async def test_history_lists_actor_transfers(client: AsyncClient, db_session, test_user, test_project, test_board):
    board, (todo, _, _) = test_board
    a, = await make_cards(db_session, todo, ["A"])
    target_board, _ = await make_board(db_session, test_project, "Target", columns=("Inbox",))
    headers = get_auth_headers(test_user)

    await client.put(f"{API}/cards/{a.id}/move", json={"targetBoardId": target_board.id}, headers=headers)
    await client.post(f"{API}/cards/{a.id}/clone", json={"targetBoardId": board.id}, headers=headers)

    resp = await client.get(f"{API}/history", headers=headers)
    assert resp.status_code == 200
    types = sorted(row["type"] for row in resp.json()["data"])
    assert types == ["card_clone", "card_move"]

    resp = await client.get(f"{API}/history/card/{a.id}", headers=headers)
    assert [row["type"] for row in resp.json()["data"]] == ["card_move"]

    resp = await client.get(f"{API}/history/galaxy/{a.id}", headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_entity_history_hidden_without_project_access(
    client: AsyncClient, db_session, test_user, second_user, outsider, test_project, test_board,
):
    board, (todo, _, _) = test_board
    a, = await make_cards(db_session, todo, ["Confidential"])
    target_board, _ = await make_board(db_session, test_project, "Secret Board", columns=("Inbox",))
    headers = get_auth_headers(test_user)
    resp = await client.put(f"{API}/cards/{a.id}/move", json={"targetBoardId": target_board.id}, headers=headers)
    assert resp.status_code == 200

    for viewer in (outsider, second_user):
        for path in (
            f"history/card/{a.id}",
            f"history/board/{target_board.id}",
            f"history/project/{test_project.id}",
        ):
            resp = await client.get(f"{API}/{path}", headers=get_auth_headers(viewer))
            assert resp.status_code == 404
            assert "data" not in resp.json()

    resp = await client.get(f"{API}/history/card/missing", headers=headers)
    assert resp.status_code == 404

    db_session.add(ProjectMember(project_id=test_project.id, user_id=second_user.id))
    await db_session.commit()
    resp = await client.get(f"{API}/history/card/{a.id}", headers=get_auth_headers(second_user))
    assert resp.status_code == 200
    assert [row["entity_title"] for row in resp.json()["data"]] == ["Confidential"]


@pytest.mark.asyncio
async def test_targets(client: AsyncClient, db_session, test_user, second_user, outsider, test_project, test_board):
    headers = get_auth_headers(test_user)

    resp = await client.get(f"{API}/targets", params={"entityType": "project"}, headers=headers)
    assert resp.status_code == 200
    assert [u["id"] for u in resp.json()["data"]] == [second_user.id]

    resp = await client.get(f"{API}/targets", params={"entityType": "board"}, headers=headers)
    assert [p["id"] for p in resp.json()["data"]] == [test_project.id]

    resp = await client.get(f"{API}/targets", params={"entityType": "card"}, headers=headers)
    boards = resp.json()["data"]
    assert len(boards) == 1
    assert [c["title"] for c in boards[0]["columns"]] == ["To Do", "Doing", "Done"]

    resp = await client.get(f"{API}/targets", params={"entityType": "galaxy"}, headers=headers)
    assert resp.status_code == 400
