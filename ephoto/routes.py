"""HTTP service: GET /api/logo runs one generation, GET / describes the service."""

import os

from aiohttp import web

from .core.exceptions import InvalidRequest
from .core.utils import log
from .providers import create_generator

EXAMPLE_EFFECT = "https://en.ephoto360.com/naruto-shippuden-logo-style-text-effect-online-808.html"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST",
    "Access-Control-Allow-Headers": "Content-Type",
}

GENERATOR_KEY = web.AppKey("generator_factory", object)

routes = web.RouteTableDef()


@web.middleware
async def cors_middleware(request, handler):
    if request.method == "OPTIONS":
        response = web.Response(status=204)
    else:
        try:
            response = await handler(request)
        except web.HTTPException as e:
            e.headers.update(CORS_HEADERS)
            raise
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        print(f"[Ephoto] ERROR {request.path}: {str(e).splitlines()[0] if str(e) else type(e).__name__}")
        return web.json_response({"success": False, "error": "Internal server error"}, status=500)


@routes.get("/")
async def health(_request):
    return web.json_response(
        {
            "status": "online",
            "service": "Ephoto360 Logo Generator API",
            "endpoints": {
                "logo": "/api/logo?url=EPHOTO_URL&name=TEXT",
                "example": f"/api/logo?url={EXAMPLE_EFFECT}&name=Naruto",
            },
        }
    )


@routes.get("/api/logo")
async def create_logo(request):
    url = request.query.get("url", "").strip()
    name = request.query.get("name", "")
    if not url or not name.strip():
        return web.json_response({"success": False, "error": "Missing url or name parameter"}, status=400)

    generator = request.app[GENERATOR_KEY]()
    try:
        result = await generator.generate(url, name)
    except InvalidRequest as e:
        return web.json_response({"success": False, "error": e.message}, status=400)

    status = 200 if result.success else 500
    return web.json_response(result.to_dict(), status=status)


def create_app(generator_factory=create_generator) -> web.Application:
    """Build the application. `generator_factory` is called once per request."""
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[GENERATOR_KEY] = generator_factory
    app.add_routes(routes)
    return app


def run(host: str = "0.0.0.0", port: int | None = None):
    port = port or int(os.getenv("PORT", "3000"))
    log(f"Server running on port {port}", "●")
    web.run_app(create_app(), host=host, port=port, print=None)
