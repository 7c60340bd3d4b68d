import importlib
import logging
import pathlib
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException
from starlette_compress import CompressMiddleware

from context import AppContext, open_context
from exceptions import ImageError, ReportValidationError
from json_response import JSONResponseUTF8
from middlewares.version_middleware import VersionMiddleware

_ROOT = pathlib.Path(__file__).parent


def _make_router(package: str, prefix: str) -> APIRouter:
    """
    Create a router from all modules in the given package.
    """
    router = APIRouter(prefix=prefix)
    counter = 0

    for p in sorted((_ROOT / package).glob('*.py')):
        if p.stem.startswith('test_'):
            continue

        module_name = f'{package}.{p.stem}'
        module = importlib.import_module(module_name)
        router_attr = getattr(module, 'router', None)

        if router_attr is not None:
            router.include_router(router_attr)
            counter += 1
        else:
            logging.warning('Missing router in %s', module_name)

    logging.info('Loaded %d routers from %s as %r', counter, package, prefix)
    return router


def _message(status_code: int, message: str) -> JSONResponseUTF8:
    return JSONResponseUTF8({'message': message}, status_code)


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Create the application, optionally with preconfigured services.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if context is not None:
            app.state.context = context
            yield
            return

        async with open_context() as ctx:
            app.state.context = ctx
            yield

    app = FastAPI(lifespan=lifespan, default_response_class=JSONResponseUTF8)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_headers=['baggage', 'sentry-trace'],
        allow_methods=['GET', 'POST'],
        max_age=int(timedelta(days=1).total_seconds()),
    )
    app.add_middleware(VersionMiddleware)
    app.add_middleware(CompressMiddleware)

    @app.exception_handler(ReportValidationError)
    async def validation_error_handler(_: Request, exc: ReportValidationError):
        return _message(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(_: Request, exc: RequestValidationError):
        return _message(400, 'Invalid request')

    @app.exception_handler(ImageError)
    async def image_error_handler(request: Request, exc: ImageError):
        logging.error('Failed to store photo for %s', request.url.path, exc_info=exc)
        return _message(500, 'Failed to process photo')

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_: Request, exc: HTTPException):
        return JSONResponseUTF8({'message': exc.detail}, exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logging.error('Unexpected error for %s %s', request.method, request.url.path, exc_info=exc)
        return _message(500, 'Internal server error')

    app.include_router(_make_router('api', '/api'))
    return app


app = create_app()
