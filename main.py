import asyncio
import logging
from typing import Any, Dict, Optional

from aiohttp import web

import config
from portal.exceptions import InvalidInputError, ResultLookupError
from portal.models import StudentRecord
from services import export_service
from services.result_service import ResultService

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("result_service", ResultService)

ERROR_STATUS = {
    "InvalidInput": 400,
    "Timeout": 408,
    "NetworkError": 503,
    "ParseError": 500,
}

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def error_response(error: ResultLookupError) -> web.Response:
    return web.json_response(error.to_dict(), status=ERROR_STATUS.get(error.kind, 500))


async def read_json(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidInputError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except ResultLookupError as e:
        if e.kind != "InvalidInput":
            logger.warning(f"{request.path} failed with {e.kind}: {e}")
        return error_response(e)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception(f"Unhandled error on {request.path}")
        return web.json_response(
            {"kind": "InternalError", "message": "Unable to fetch results. Please try again later."},
            status=500,
        )


async def health_check(request):
    logger.info(f"Health check from {request.remote}")
    return web.Response(text="OK", status=200)


async def fetch_result(request: web.Request) -> web.Response:
    body = await read_json(request)
    service = request.app[SERVICE_KEY]

    record = await asyncio.to_thread(service.fetch_result, body.get("url"), body.get("htno"))
    return web.json_response({"data": record.to_dict()}, status=200)


async def fetch_range(request: web.Request) -> web.Response:
    body = await read_json(request)
    service = request.app[SERVICE_KEY]

    outcome = await asyncio.to_thread(
        service.fetch_range, body.get("url"), body.get("startHtno"), body.get("endHtno")
    )
    return web.json_response(outcome.to_dict(), status=200)


async def _records_from_body(request: web.Request):
    body = await read_json(request)
    records = body.get("records")
    if not isinstance(records, list):
        raise InvalidInputError("Missing required field: records")
    return [StudentRecord.from_dict(r) for r in records]


async def export_xlsx(request: web.Request) -> web.Response:
    records = await _records_from_body(request)
    payload = await asyncio.to_thread(export_service.build_spreadsheet, records)
    return web.Response(
        body=payload,
        content_type=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_service.SPREADSHEET_FILENAME}"'},
    )


async def export_pdf(request: web.Request) -> web.Response:
    records = await _records_from_body(request)
    payload = await asyncio.to_thread(export_service.build_pdf, records)
    return web.Response(
        body=payload,
        content_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{export_service.PDF_FILENAME}"'},
    )


def create_app(service: Optional[ResultService] = None) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service or ResultService()

    async def close_client(app):
        app[SERVICE_KEY].client.close()

    app.on_cleanup.append(close_client)

    app.router.add_get("/health", health_check)
    app.router.add_get("/", health_check)
    app.router.add_post("/api/results", fetch_result)
    app.router.add_post("/api/results/range", fetch_range)
    app.router.add_post("/api/export/xlsx", export_xlsx)
    app.router.add_post("/api/export/pdf", export_pdf)
    return app


async def main():
    app = create_app()

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", config.PORT)
    await site.start()

    logger.info(f"Results API started on port {config.PORT}")
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


if __name__ == "__main__":
    asyncio.run(main())
