"""
Meta endpoints describing the mounted HTTP and WebSocket routes
"""
from fastapi import APIRouter, Depends, Request
from fastapi.routing import APIRoute, APIWebSocketRoute

from speaking_practice.config import Settings, get_settings

router = APIRouter()


@router.get("/meta/endpoints")
async def list_api_endpoints(request: Request, settings: Settings = Depends(get_settings)):
    """Sorted list of API and conversation endpoints"""
    routes = []
    seen = set()

    for route in request.app.routes:
        if isinstance(route, APIWebSocketRoute):
            methods = ["WEBSOCKET"]
        elif isinstance(route, APIRoute) and route.path.startswith(settings.API_PREFIX):
            methods = sorted(m for m in route.methods if m not in {"HEAD", "OPTIONS"})
        else:
            continue

        signature = (route.path, tuple(methods))
        if not methods or signature in seen:
            continue
        seen.add(signature)

        routes.append({
            "path": route.path,
            "methods": methods,
            "name": route.name,
            "summary": getattr(route, "summary", None),
            "tags": getattr(route, "tags", []),
        })

    routes.sort(key=lambda item: item["path"])
    return {"count": len(routes), "routes": routes}
