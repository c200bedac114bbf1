import json
from pathlib import Path

import httpx
import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient

from toolhub.app.config.settings import settings
from toolhub.app.db.engine import reset_engine_for_tests
from toolhub.app.db.models import ToolKind, ToolStatus
from toolhub.app.db.repo.markets_repo import create_market
from toolhub.app.db.repo.tools_repo import create_tool
from toolhub.app.db.session import get_session_factory, reset_sessionmaker_for_tests
from toolhub.app.main import create_app
from toolhub.app.runtime import build_runtime

MCP_BASE_URL = "http://mcp.test"
MARKET_URL = "http://market.test/api/servers"


class FakeMcpServer:
    """Answers JSON-RPC posts the way a small MCP server would."""

    def __init__(self):
        self.requests = []
        self.initialize_status = 200
        self.call_status = 200
        self.raw_body = None
        self.tools = {
            "remote_echo": lambda args: args.get("text", ""),
            "remote_sum": lambda args: sum(args.get("values", [])),
        }

    @property
    def calls(self):
        return [body for _, body in self.requests if body["method"] == "tools/call"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append((request, body))
        if body["method"] == "initialize":
            return httpx.Response(
                self.initialize_status,
                json={"jsonrpc": "2.0", "id": body["id"], "result": {"protocolVersion": "2024-11-05"}},
            )

        if self.call_status != 200:
            return httpx.Response(self.call_status, text="unavailable")
        if self.raw_body is not None:
            return httpx.Response(200, text=self.raw_body)

        name = body["params"]["name"]
        if name not in self.tools:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": f"Unknown tool: {name}"}},
            )
        value = self.tools[name](body["params"]["arguments"])
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "result": {"content": [{"type": "text", "text": str(value)}]},
            },
        )


def make_servers(count, prefix="srv"):
    return [
        {
            "id": f"{prefix}-{i}",
            "name": f"server-{i}",
            "title": f"Server {i}",
            "description": f"Test server {i}",
            "author": "tests",
            "url": f"http://remote-{i}.test",
            "score": i,
        }
        for i in range(count)
    ]


class FakeMarket:
    """Paged market listing backed by an in-memory server list."""

    def __init__(self, servers=None):
        self.servers = list(servers if servers is not None else make_servers(45))
        self.requests = []
        self.fail_on_page = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params["page"])
        size = int(request.url.params["pageSize"])
        if page == self.fail_on_page:
            return httpx.Response(500, text="boom")
        chunk = self.servers[(page - 1) * size: page * size]
        return httpx.Response(200, json={"total": len(self.servers), "servers": chunk})


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).resolve().parent.parent.parent


def apply_migrations(db_url, project_root):
    cfg = Config(str(project_root / "toolhub" / "alembic.ini"))
    cfg.set_main_option("script_location", str(project_root / "toolhub" / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def session_factory(db_url, project_root, monkeypatch):
    apply_migrations(db_url, project_root)
    monkeypatch.setattr(settings, "database_url", db_url)
    reset_engine_for_tests()
    reset_sessionmaker_for_tests()
    yield get_session_factory()
    reset_engine_for_tests()
    reset_sessionmaker_for_tests()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def mcp_server():
    return FakeMcpServer()


@pytest.fixture
def market_api():
    return FakeMarket()


@pytest.fixture
def runtime(session_factory, mcp_server, market_api):
    rt = build_runtime(
        session_factory=session_factory,
        remote_http=httpx.Client(transport=httpx.MockTransport(mcp_server)),
        market_http=httpx.Client(transport=httpx.MockTransport(market_api)),
    )
    yield rt
    rt.close()


@pytest.fixture
def client(runtime):
    app = create_app(runtime)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def add_tool(session_factory):
    """Persist a tool definition and return it."""

    def _add(name, kind=ToolKind.LOCAL, status=ToolStatus.ENABLED, config=None, description=None):
        with session_factory() as session:
            tool = create_tool(
                session, name=name, kind=kind, status=status, config=config, description=description
            )
            session.commit()
            return tool

    return _add


@pytest.fixture
def add_remote_tool(add_tool):
    def _add(name, url=MCP_BASE_URL, transport="http", status=ToolStatus.ENABLED, **extra):
        config = {"transport": {"type": transport, "url": url, "headers": {"X-Token": "abc"}}}
        config.update(extra)
        return add_tool(name, kind=ToolKind.REMOTE, status=status, config=config)

    return _add


@pytest.fixture
def add_market(session_factory):
    def _add(name="Test market", url=MARKET_URL, auth_config=None):
        with session_factory() as session:
            market = create_market(session, name=name, url=url, auth_config=auth_config)
            session.commit()
            return market

    return _add
