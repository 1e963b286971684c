import asyncio

from aiohttp.test_utils import TestClient, TestServer

from main import create_app
from portal.exceptions import FetchTimeoutError, NetworkError
from services.result_service import ResultService
from tests.fakes import NOT_FOUND_PAGE, REJECTED_PAGE, URL, FakeClient


def run(client_factory, scenario):
    async def _run():
        app = create_app(ResultService(client=client_factory()))
        async with TestClient(TestServer(app)) as client:
            return await scenario(client)

    return asyncio.run(_run())


def test_health():
    async def scenario(client):
        response = await client.get("/health")
        return response.status, await response.text()

    assert run(FakeClient, scenario) == (200, "OK")


def test_single_result_found():
    async def scenario(client):
        response = await client.post("/api/results", json={"url": URL, "htno": "123456789012"})
        return response.status, await response.json()

    status, body = run(FakeClient, scenario)
    assert status == 200
    assert body["data"]["status"] == "FOUND"
    assert body["data"]["personalDetails"]["hallTicketNo"] == "123456789012"
    assert body["data"]["result"]["sgpa"] == "PASSED-8.00"


def test_single_result_not_found_is_200():
    async def scenario(client):
        response = await client.post("/api/results", json={"url": URL, "htno": "123456789012"})
        return response.status, await response.json()

    status, body = run(lambda: FakeClient(pages={"123456789012": NOT_FOUND_PAGE}), scenario)
    assert status == 200
    assert body == {"data": {"status": "NOT_FOUND", "message": 'Hall Ticket Number "123456789012" is not found.'}}


def test_invalid_input_is_400():
    async def scenario(client):
        statuses = []
        for payload in [{"url": URL}, {"url": URL, "htno": "12345"}, {"url": "bad", "htno": "123456789012"}]:
            response = await client.post("/api/results", json=payload)
            body = await response.json()
            statuses.append((response.status, body["kind"]))
        response = await client.post("/api/results", data="not json")
        statuses.append((response.status, (await response.json())["kind"]))
        return statuses

    assert run(FakeClient, scenario) == [(400, "InvalidInput")] * 4


def test_network_error_is_503():
    async def scenario(client):
        response = await client.post("/api/results", json={"url": URL, "htno": "123456789012"})
        return response.status, await response.json()

    status, body = run(lambda: FakeClient(failures={"123456789012": NetworkError("fetch failed")}), scenario)
    assert status == 503
    assert body["kind"] == "NetworkError"


def test_range_reports_partial_results():
    async def scenario(client):
        response = await client.post(
            "/api/results/range",
            json={"url": URL, "startHtno": "100000000001", "endHtno": "100000000003"},
        )
        return response.status, await response.json()

    status, body = run(lambda: FakeClient(failures={"100000000002": NetworkError("fetch failed")}), scenario)
    assert status == 200
    assert body["complete"] is False
    assert [r["personalDetails"]["hallTicketNo"] for r in body["data"]] == ["100000000001"]
    assert body["error"]["htno"] == "100000000002"
    assert body["error"]["kind"] == "NetworkError"


def test_export_endpoints():
    records = [
        {"status": "FOUND", "personalDetails": {"hallTicketNo": "100000000001", "name": "JOHN DOE"}},
        {"status": "NOT_FOUND", "message": "gone"},
    ]

    async def scenario(client):
        xlsx = await client.post("/api/export/xlsx", json={"records": records})
        pdf = await client.post("/api/export/pdf", json={"records": records})
        bad = await client.post("/api/export/pdf", json={"records": [{"status": "MAYBE"}]})
        return (
            xlsx.status,
            xlsx.headers["Content-Disposition"],
            pdf.status,
            (await pdf.read())[:4],
            bad.status,
        )

    xlsx_status, disposition, pdf_status, pdf_magic, bad_status = run(FakeClient, scenario)
    assert xlsx_status == 200
    assert "student_results.xlsx" in disposition
    assert pdf_status == 200
    assert pdf_magic == b"%PDF"
    assert bad_status == 400


def post_single(client_factory):
    async def scenario(client):
        response = await client.post("/api/results", json={"url": URL, "htno": "123456789012"})
        return response.status, await response.json()

    return run(client_factory, scenario)


def test_timeout_is_408():
    status, body = post_single(lambda: FakeClient(failures={"123456789012": FetchTimeoutError("timed out")}))
    assert status == 408
    assert body["kind"] == "Timeout"


def test_parse_error_is_500():
    status, body = post_single(lambda: FakeClient(pages={"123456789012": REJECTED_PAGE}))
    assert status == 500
    assert body["kind"] == "ParseError"
    assert body["htno"] == "123456789012"


def test_unexpected_error_is_internal():
    status, body = post_single(lambda: FakeClient(failures={"123456789012": RuntimeError("boom")}))
    assert status == 500
    assert body == {"kind": "InternalError", "message": "Unable to fetch results. Please try again later."}


def test_range_with_rejected_markup_keeps_records():
    async def scenario(client):
        response = await client.post(
            "/api/results/range",
            json={"url": URL, "startHtno": "100000000001", "endHtno": "100000000003"},
        )
        return response.status, await response.json()

    status, body = run(lambda: FakeClient(pages={"100000000002": REJECTED_PAGE}), scenario)
    assert status == 200
    assert len(body["data"]) == 1
    assert body["error"]["kind"] == "ParseError"
    assert body["error"]["htno"] == "100000000002"
