import uuid
import time
from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from mongo_repository.logging.logger import _current_request

TRACE_HEADER = "X-Trace-ID"
# Polled by load balancers; logged at DEBUG to keep the app log readable
QUIET_PATHS = frozenset({"/health"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Assign a trace id to each request and log its start, finish and duration."""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(TRACE_HEADER) or uuid.uuid4().hex
        request.state.trace_id = trace_id
        token = _current_request.set(request)
        level = "DEBUG" if request.url.path in QUIET_PATHS else "INFO"

        with logger.contextualize(trace_id=trace_id):
            started = time.perf_counter()
            logger.log(
                level,
                f"Request Started | {request.method} {request.url.path} | "
                f"Client: {request.client.host if request.client else 'unknown'}"
            )
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"Request Failed | Error: {e} | Duration: {_elapsed_ms(started):.2f}ms"
                )
                raise
            finally:
                _current_request.reset(token)

            logger.log(
                level,
                f"Request Finished | Status: {response.status_code} | "
                f"Duration: {_elapsed_ms(started):.2f}ms"
            )
            response.headers[TRACE_HEADER] = trace_id
            return response


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
