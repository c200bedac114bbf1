from toolhub.app.db.models import ToolDefinition, ToolKind, ToolStatus
from toolhub.app.db.repo.catalog_repo import get_entry, upsert_entry
from toolhub.app.db.repo.tools_repo import get_tool_by_name
from toolhub.app.domain.market.loader import MarketToolLoader
from toolhub.app.domain.tools.endpoints import RemoteEndpointTable


def add_entry(session_factory, market_id, external_id, name, metadata=None):
    with session_factory() as session:
        entry, _ = upsert_entry(
            session,
            market_id=market_id,
            external_id=external_id,
            name=name,
            description=f"{name} description",
            metadata=metadata if metadata is not None else {"id": external_id, "url": f"http://{external_id}.test"},
        )
        session.commit()
        return entry.id


def count_tools(session_factory):
    with session_factory() as session:
        return session.query(ToolDefinition).count()


def test_load_creates_live_remote_tool(session_factory, add_market):
    market = add_market()
    entry_id = add_entry(session_factory, market.id, "srv-1", "weather")
    endpoints = RemoteEndpointTable()
    loader = MarketToolLoader(session_factory, endpoints)

    assert loader.load(entry_id) is True

    with session_factory() as session:
        tool = get_tool_by_name(session, "weather")
        entry = get_entry(session, entry_id)
        assert tool.kind == ToolKind.REMOTE
        assert tool.status == ToolStatus.ENABLED
        assert tool.description == "weather description"
        assert tool.config["url"] == "http://srv-1.test"
        assert entry.loaded is True
        assert entry.linked_tool_id == tool.id
        assert entry.linked_tool_name == "weather"
    endpoint = endpoints.get(tool.id)
    assert endpoint is not None
    assert endpoint.url == "http://srv-1.test"
    assert endpoint.transport == "http"


def test_second_load_is_a_noop(session_factory, add_market):
    market = add_market()
    entry_id = add_entry(session_factory, market.id, "srv-1", "weather")
    loader = MarketToolLoader(session_factory, RemoteEndpointTable())

    assert loader.load(entry_id) is True
    assert loader.load(entry_id) is False
    assert count_tools(session_factory) == 1


def test_missing_entry(session_factory):
    assert MarketToolLoader(session_factory, RemoteEndpointTable()).load(404) is False


def test_registration_failure_keeps_definition(session_factory, add_market):
    market = add_market()
    entry_id = add_entry(session_factory, market.id, "srv-1", "no_url", metadata={"id": "srv-1"})
    endpoints = RemoteEndpointTable()

    assert MarketToolLoader(session_factory, endpoints).load(entry_id) is True

    with session_factory() as session:
        assert get_tool_by_name(session, "no_url") is not None
        assert get_entry(session, entry_id).loaded is True
    assert len(endpoints) == 0


def test_duplicate_tool_name_fails(session_factory, add_market, add_tool):
    add_tool("weather")
    market = add_market()
    entry_id = add_entry(session_factory, market.id, "srv-1", "weather")

    assert MarketToolLoader(session_factory, RemoteEndpointTable()).load(entry_id) is False
    with session_factory() as session:
        assert get_entry(session, entry_id).loaded is False


def test_batch_counts_successes(session_factory, add_market):
    market = add_market()
    first = add_entry(session_factory, market.id, "a", "tool_a")
    second = add_entry(session_factory, market.id, "b", "tool_b")
    loader = MarketToolLoader(session_factory, RemoteEndpointTable())
    loader.load(first)

    assert loader.load_batch([first, second, 999]) == 1
    assert loader.load_batch([]) == 0
    assert loader.load_batch(None) == 0
    assert count_tools(session_factory) == 2
