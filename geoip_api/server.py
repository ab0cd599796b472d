"""
HTTP transport: GET routes that answer with the caller's geolocation
"""

import json
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .config import HOST, get_db_options
from .cors import CorsMatcher
from .db import GeoDb
from .middleware import TracingMiddleware
from .providers import DbInterface
from .schemas.options import AppOptions

logger = logging.getLogger(__name__)

_PARAM_RE = re.compile(r":(\w+)")


class PrettyJSONResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


def to_starlette_path(pattern: str) -> str:
    """
    Translate an Express-style route pattern to a Starlette path

    "/:lang/geo" -> "/{lang}/geo", "/*" -> "/{wildcard0:path}"
    """
    path = _PARAM_RE.sub(r"{\1}", pattern)
    parts = path.split("*")
    path = parts[0]
    for i, part in enumerate(parts[1:]):
        path += f"{{wildcard{i}:path}}{part}"
    if not path.startswith("/"):
        path = "/" + path
    return path


class GeoServer:
    """Wires config, CORS and the database into a FastAPI application"""

    def __init__(self, options: AppOptions, db_interface: Optional[DbInterface] = None):
        self.options = options
        self.cors = CorsMatcher(options.cors)
        self.geo_db = GeoDb(
            get_db_options(options),
            options.enabled_outputs.enabled_names(),
            db_interface=db_interface,
        )
        self.app = self.create_app()

    def create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(application: FastAPI):
            logger.info("GeoIP Web API ready", extra={
                "port": self.options.port,
                "paths": self.options.get_paths,
                "provider": self.geo_db.provider.name,
            })
            try:
                yield
            finally:
                self.geo_db.close()
                logger.info("GeoIP Web API shutting down")

        app = FastAPI(title="GeoIP Web API", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
        app.add_middleware(TracingMiddleware)

        for path in self.route_paths():
            app.add_route(path, self.handle_get, methods=["GET"], include_in_schema=False)
        return app

    def route_paths(self) -> List[str]:
        paths = []
        for pattern in self.options.get_paths:
            path = to_starlette_path(pattern)
            if path not in paths:
                paths.append(path)
        return paths

    async def handle_get(self, request: Request) -> Response:
        ip = request.client.host if request.client else ""
        result = await self.geo_db.lookup(ip)
        if result.error:
            logger.error(result.error, extra={"client_ip": ip, "path": request.url.path})

        response_class = PrettyJSONResponse if self.options.pretty_output else JSONResponse
        response = response_class(result.response)

        for header, value in self.options.get_headers.items():
            if value is None:
                if header in response.headers:
                    del response.headers[header]
            else:
                response.headers[header] = value

        cors_headers = self.cors.get_cors_headers(request.headers.get("origin"))
        if cors_headers:
            response.headers.update(cors_headers)

        return response

    def set_cors_origins(self, origins: Optional[List[str]]) -> None:
        self.cors.set_origins(origins)

    def set_cors_origin_regex(self, origin_regex: Any) -> None:
        self.cors.set_origin_regex(origin_regex)

    def run(self) -> None:
        logger.info(f"Starting GeoIP Web API on port {self.options.port}")
        uvicorn.run(self.app, host=HOST, port=self.options.port, log_config=None, access_log=False)


def create_app(options: AppOptions, db_interface: Optional[DbInterface] = None) -> FastAPI:
    return GeoServer(options, db_interface=db_interface).app
