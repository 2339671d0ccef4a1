from wsgiref.simple_server import make_server

from pathgate import CallableRightsOracle, Gate
from pathgate.adapters.wsgi import PathGateWSGIMiddleware

gate = Gate.default(
    CallableRightsOracle(
        admin=lambda environ: environ.get("HTTP_X_USER") == "alice",
        user=lambda environ: environ.get("HTTP_X_USER") in ("alice", "bob"),
    )
)


def hello(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain; charset=utf-8")])
    return [f"you reached {environ['PATH_INFO']}\n".encode()]


app = PathGateWSGIMiddleware(hello, gate)

if __name__ == "__main__":
    with make_server("127.0.0.1", 8000, app) as server:
        server.serve_forever()
