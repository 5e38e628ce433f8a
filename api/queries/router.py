"""
FastAPI router for configured query endpoints.

One GET route is registered per endpoint definition. Definitions with any
other method are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import PlainTextResponse

from core import db

from . import params, repository, service
from .schemas import EndpointDefinition

logger = logging.getLogger(__name__)

QUERY_FAILED_MESSAGE = "An error occurred while executing the query"


def _query_lists(request: Request) -> dict[str, list[str]]:
    query = request.query_params
    return {key: query.getlist(key) for key in query.keys()}


def make_handler(definition: EndpointDefinition) -> Callable[[Request], Awaitable[Response]]:
    async def handle(request: Request) -> Response:
        try:
            parameters = params.bind_parameters(definition.parameters, _query_lists(request))
        except params.ParameterBindingError as exc:
            return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)
        except params.UnsupportedParameterType:
            logger.exception("query_failed route=%s stage=bind", definition.route)
            return PlainTextResponse(QUERY_FAILED_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        database: db.Database = request.app.state.database
        stage = "execute"
        try:
            rows = await repository.run_query(database, definition.query, parameters)
            stage = "shape"
            return service.shape_result(definition.return_type, rows)
        except Exception:
            # Driver details stay in the log.
            logger.exception("query_failed route=%s stage=%s", definition.route, stage)
            return PlainTextResponse(QUERY_FAILED_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return handle


def build_router(definitions: Iterable[EndpointDefinition]) -> APIRouter:
    """
    Build a router with one handler per configured GET endpoint.
    """
    router = APIRouter()
    for definition in definitions:
        if definition.method != "GET":
            logger.warning("endpoint_skipped route=%s method=%s", definition.route, definition.method)
            continue

        router.add_api_route(
            definition.route,
            make_handler(definition),
            methods=["GET"],
            name=definition.route,
            response_class=Response,
            response_model=None,
        )
        logger.info(
            "endpoint_registered route=%s return_type=%s parameters=%s",
            definition.route,
            definition.return_type.value,
            ",".join(definition.parameters) or "-",
        )
    return router
