import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from queuedesk.core.logger import logger

class LogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        # Process the request
        response = await call_next(request)

        # Calculate processing time
        process_time = time.time() - start_time

        # Polling screens hit these every few seconds
        log = logger.debug if request.url.path.endswith(("/display", "/fees")) else logger.info
        log(
            f"Method: {request.method} | "
            f"Path: {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Duration: {process_time:.4f}s"
        )

        return response
