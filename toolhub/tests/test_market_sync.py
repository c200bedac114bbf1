import httpx

from toolhub.app.db.repo import catalog_repo
from toolhub.app.db.repo.catalog_repo import list_entries, mark_loaded, upsert_entry
from toolhub.app.domain.market.sync import MarketSyncEngine, auth_headers

from conftest import FakeMarket, make_servers


def make_engine(session_factory, market):
    return MarketSyncEngine(
        session_factory, client=httpx.Client(transport=httpx.MockTransport(market)), page_size=40, lang="zh"
    )


def test_two_pages_then_stop(session_factory, add_market):
    market_api = FakeMarket(make_servers(45))
    market = add_market()

    assert make_engine(session_factory, market_api).refresh(market.id) is True

    assert [int(r.url.params["page"]) for r in market_api.requests] == [1, 2]
    params = market_api.requests[0].url.params
    assert params["tab"] == "all"
    assert params["search"] == ""
    assert params["pageSize"] == "40"
    assert params["lang"] == "zh"
    with session_factory() as session:
        assert len(list_entries(session, market.id)) == 45


def test_full_last_page_needs_an_empty_page(session_factory, add_market):
    market_api = FakeMarket(make_servers(80))
    market = add_market()

    assert make_engine(session_factory, market_api).refresh(market.id) is True
    assert len(market_api.requests) == 3


def test_entry_fields_and_metadata(session_factory, add_market):
    servers = [
        {"id": 101, "name": "n1", "title": "Title One", "description": "d", "category": {"id": 1, "name": "search"}, "stars": 9},
        {"id": "b", "name": "only-name"},
        {"id": "c"},
        {"name": "no id is skipped"},
    ]
    market = add_market()

    make_engine(session_factory, FakeMarket(servers)).refresh(market.id)

    with session_factory() as session:
        entries = {e.external_id: e for e in list_entries(session, market.id)}
    assert set(entries) == {"101", "b", "c"}
    assert entries["101"].name == "Title One"
    assert entries["b"].name == "only-name"
    assert entries["c"].name == ""
    metadata = entries["101"].entry_metadata
    assert metadata["id"] == "101"
    assert metadata["stars"] == 9
    assert metadata["category"]["name"] == "search"
    assert entries["b"].loaded is False


def test_resync_updates_but_keeps_loaded_state(session_factory, add_market):
    market = add_market()
    market_api = FakeMarket(make_servers(3))
    engine = make_engine(session_factory, market_api)
    engine.refresh(market.id)

    with session_factory() as session:
        entry = list_entries(session, market.id)[0]
        mark_loaded(session, entry.id, 55, "linked")
        session.commit()
        entry_id = entry.external_id

    for server in market_api.servers:
        server["title"] = server["title"] + " v2"
    engine.refresh(market.id)

    with session_factory() as session:
        entries = {e.external_id: e for e in list_entries(session, market.id)}
    assert len(entries) == 3
    assert entries[entry_id].loaded is True
    assert entries[entry_id].linked_tool_id == 55
    assert entries[entry_id].linked_tool_name == "linked"
    assert all(e.name.endswith(" v2") for e in entries.values())


def test_failure_keeps_committed_pages(session_factory, add_market):
    market_api = FakeMarket(make_servers(100))
    market_api.fail_on_page = 2
    market = add_market()

    assert make_engine(session_factory, market_api).refresh(market.id) is True
    with session_factory() as session:
        assert len(list_entries(session, market.id)) == 40


def test_first_page_failure_returns_false(session_factory, add_market):
    market_api = FakeMarket(make_servers(10))
    market_api.fail_on_page = 1
    market = add_market()

    assert make_engine(session_factory, market_api).refresh(market.id) is False


def test_unreadable_page_stops(session_factory, add_market):
    market = add_market()
    engine = make_engine(session_factory, lambda request: httpx.Response(200, text="<html>"))
    assert engine.refresh(market.id) is False


def test_unknown_market(session_factory):
    assert make_engine(session_factory, FakeMarket()).refresh(999) is False


def test_bearer_header_from_auth_config(session_factory, add_market):
    market_api = FakeMarket(make_servers(1))
    market = add_market(auth_config={"apiKey": "k-123"})

    make_engine(session_factory, market_api).refresh(market.id)

    assert market_api.requests[0].headers["Authorization"] == "Bearer k-123"


def test_auth_headers_variants():
    assert auth_headers(None) == {}
    assert auth_headers({}) == {}
    assert auth_headers('{"apiKey": "x"}') == {"Authorization": "Bearer x"}
    assert auth_headers("not json") == {}
    assert auth_headers({"other": 1}) == {}


def test_entry_inserted_by_concurrent_refresh_is_overwritten(session_factory, add_market, monkeypatch):
    market = add_market()
    market_api = FakeMarket(make_servers(3))
    real_lookup = catalog_repo.get_entry_by_external_id
    raced = []

    def racing_lookup(session, market_id, external_id):
        # The other refresh commits between our lookup and our insert
        if not raced:
            raced.append(external_id)
            with session_factory() as other:
                upsert_entry(other, market_id, external_id, "stale", "", {})
                other.commit()
            return None
        return real_lookup(session, market_id, external_id)

    monkeypatch.setattr(catalog_repo, "get_entry_by_external_id", racing_lookup)

    assert make_engine(session_factory, market_api).refresh(market.id) is True

    monkeypatch.setattr(catalog_repo, "get_entry_by_external_id", real_lookup)
    with session_factory() as session:
        entries = {e.external_id: e for e in list_entries(session, market.id)}
    assert len(entries) == 3
    assert entries[raced[0]].name == "Server 0"
