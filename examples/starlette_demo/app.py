import contextlib
import pathlib

from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from pathgate import CallableRightsOracle, Gate
from pathgate.adapters.asgi import PathGateMiddleware
from pathgate.storage import FileRuleSource, HotReloader, load_rules

RULES = pathlib.Path(__file__).parent.parent / "rules.yaml"

# Demo only: the X-User header stands in for a real session store.
ADMINS = {"alice"}
USERS = {"alice", "bob"}

oracle = CallableRightsOracle(
    admin=lambda req: req.headers.get("x-user") in ADMINS,
    user=lambda req: req.headers.get("x-user") in USERS,
)
gate = Gate(oracle, load_rules(str(RULES)))
reloader = HotReloader(gate, FileRuleSource(str(RULES)), poll_interval=5.0)


async def page(request):
    return PlainTextResponse(f"you reached {request.url.path}")


@contextlib.asynccontextmanager
async def lifespan(app):
    reloader.start()
    try:
        yield
    finally:
        reloader.stop()


app = Starlette(routes=[Route("/{rest:path}", page)], lifespan=lifespan)
app = PathGateMiddleware(app, gate=gate, add_headers=True)
