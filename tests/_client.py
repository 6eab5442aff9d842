import httpx

from caseflow.main import app as default_app


def get_async_client(app=None) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app or default_app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def actor_headers(actor) -> dict[str, str]:
    headers = {"X-Actor-Role": actor.role}
    if actor.id is not None:
        headers["X-Actor-Id"] = str(actor.id)
    if actor.district:
        headers["X-Actor-District"] = actor.district
    return headers
