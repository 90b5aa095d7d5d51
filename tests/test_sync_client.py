from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from inspection_drafts.domain.models import Draft
from inspection_drafts.errors import RemoteAPIError
from inspection_drafts.sync.client import Credentials, PushOutcome, SyncClient


def _not_found() -> RemoteAPIError:
    return RemoteAPIError("missing", "not_found", status=404)


def _mock_api() -> MagicMock:
    api = MagicMock()
    api.update_inspection = AsyncMock(return_value={})
    api.create_inspection = AsyncMock(return_value={})
    api.delete_inspection = AsyncMock(return_value=True)
    api.list_inspections = AsyncMock(return_value=[])
    api.migrate = AsyncMock(return_value={"success": True, "count": 0})
    return api


@pytest.mark.asyncio
async def test_push_updates_existing_remote_draft() -> None:
    api = _mock_api()
    client = SyncClient(api, Credentials(token="t"))

    result = await client.push(Draft(id="a"))

    assert result.outcome is PushOutcome.UPDATED
    assert result.ok
    api.create_inspection.assert_not_called()


@pytest.mark.asyncio
async def test_push_creates_after_not_found() -> None:
    api = _mock_api()
    api.update_inspection.side_effect = _not_found()
    client = SyncClient(api, Credentials(token="t"))

    result = await client.push(Draft(id="a"))

    assert result.outcome is PushOutcome.CREATED_AFTER_NOT_FOUND
    assert api.create_inspection.await_args.args[0]["id"] == "a"


@pytest.mark.asyncio
async def test_push_does_not_create_on_other_errors() -> None:
    api = _mock_api()
    api.update_inspection.side_effect = RemoteAPIError("boom", "http_error", status=500)
    client = SyncClient(api, Credentials(token="t"))

    result = await client.push(Draft(id="a"))

    assert result.outcome is PushOutcome.FAILED
    assert "boom" in result.error
    api.create_inspection.assert_not_called()


@pytest.mark.asyncio
async def test_push_reports_failed_create() -> None:
    api = _mock_api()
    api.update_inspection.side_effect = _not_found()
    api.create_inspection.side_effect = RemoteAPIError("down", "network")
    client = SyncClient(api, Credentials(token="t"))

    result = await client.push(Draft(id="a"))

    assert result.outcome is PushOutcome.FAILED


@pytest.mark.asyncio
async def test_no_credential_short_circuits_everything() -> None:
    api = _mock_api()
    client = SyncClient(api, Credentials())

    assert (await client.push(Draft(id="a"))).outcome is PushOutcome.SKIPPED
    assert await client.push_delete("a") is False
    assert await client.fetch_all() is None
    assert client.schedule_push(Draft(id="a")) is None
    assert client.schedule_delete("a") is None
    api.update_inspection.assert_not_called()
    api.delete_inspection.assert_not_called()


@pytest.mark.asyncio
async def test_push_skips_tombstoned_draft() -> None:
    api = _mock_api()
    client = SyncClient(api, Credentials(token="t"), is_tombstoned=lambda draft_id: True)

    result = await client.push(Draft(id="a"))

    assert result.outcome is PushOutcome.SKIPPED
    api.update_inspection.assert_not_called()


@pytest.mark.asyncio
async def test_create_landing_after_delete_is_chased() -> None:
    api = _mock_api()
    deleted: set[str] = set()

    async def create(payload):
        # Delete happens while the create is in flight.
        deleted.add(payload["id"])
        return {}

    api.update_inspection.side_effect = _not_found()
    api.create_inspection.side_effect = create
    client = SyncClient(api, Credentials(token="t"), is_tombstoned=deleted.__contains__)

    result = await client.push(Draft(id="a"))

    assert result.outcome is PushOutcome.CREATED_AFTER_NOT_FOUND
    api.delete_inspection.assert_awaited_once_with("a")


@pytest.mark.asyncio
async def test_push_delete_failure_is_absorbed() -> None:
    api = _mock_api()
    api.delete_inspection.side_effect = RemoteAPIError("missing", "not_found", status=404)
    client = SyncClient(api, Credentials(token="t"))

    assert await client.push_delete("a") is False


@pytest.mark.asyncio
async def test_fetch_all_maps_local_id_and_drops_server_fields() -> None:
    api = _mock_api()
    api.list_inspections.return_value = [
        {"_id": "oid1", "__v": 0, "userId": "u1", "localId": "inspection_1_abc", "rooms": []},
        {"_id": "oid2", "localId": "bad", "currentStep": 99},
    ]
    client = SyncClient(api, Credentials(token="t"))

    drafts = await client.fetch_all()

    assert [d.id for d in drafts] == ["inspection_1_abc"]
    assert "_id" not in drafts[0].to_json()


@pytest.mark.asyncio
async def test_fetch_all_returns_none_on_failure() -> None:
    api = _mock_api()
    api.list_inspections.side_effect = RemoteAPIError("down", "network")
    client = SyncClient(api, Credentials(token="t"))

    assert await client.fetch_all() is None


@pytest.mark.asyncio
async def test_schedule_push_snapshots_and_drains() -> None:
    api = _mock_api()
    client = SyncClient(api, Credentials(token="t"))
    draft = Draft(id="a", property_data={"code": "before"})

    task = client.schedule_push(draft)
    draft.property_data["code"] = "after"
    assert client.pending == 1

    await client.drain()

    assert task.done()
    assert client.pending == 0
    sent = api.update_inspection.await_args.args[1]
    assert sent["propertyData"] == {"code": "before"}


def test_schedule_without_running_loop_is_dropped() -> None:
    api = _mock_api()
    client = SyncClient(api, Credentials(token="t"))

    assert client.schedule_push(Draft(id="a")) is None
    assert client.pending == 0


@pytest.mark.asyncio
async def test_migrate_local() -> None:
    api = _mock_api()
    api.migrate.return_value = {"success": True, "count": 2, "message": "2 vistorias migradas"}
    client = SyncClient(api, Credentials(token="t"))

    result = await client.migrate_local([Draft(id="a"), Draft(id="b")])

    assert result.success
    assert result.count == 2
    assert set(api.migrate.await_args.args[0]) == {"a", "b"}
    assert (await client.migrate_local([])).count == 0


def test_credentials_login_logout() -> None:
    creds = Credentials()
    creds.login("tok", "u1")
    assert creds() == "tok"
    creds.logout()
    assert creds() is None
    assert creds.user_id is None


@pytest.mark.asyncio
async def test_without_remote_api_every_call_is_a_noop() -> None:
    client = SyncClient(None, Credentials(token="tok"))

    assert not client.enabled
    assert (await client.push(Draft(id="a"))).outcome is PushOutcome.SKIPPED
    assert await client.push_delete("a") is False
    assert await client.fetch_all() is None
    result = await client.migrate_local([Draft(id="a")])
    assert not result.success
    assert result.message == "Not authenticated"
