"""
Integration tests for the keyword administration API.
"""

import io

import pytest
from httpx import AsyncClient
from openpyxl import Workbook, load_workbook

pytestmark = pytest.mark.asyncio

BASE = "/api/v1/keywords"


def _xlsx(rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestKeywordCrud:
    async def test_create_and_get(self, async_client: AsyncClient):
        response = await async_client.post(
            BASE, json={"keyword": " Nike ", "target_url": "https://nike.com"}
        )

        assert response.status_code == 201
        created = response.json()
        assert created["keyword"] == "Nike"
        assert created["active"] is True

        fetched = await async_client.get(f"{BASE}/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["target_url"] == "https://nike.com"

    async def test_list_reports_totals(self, async_client: AsyncClient, keywords):
        response = await async_client.get(BASE)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert data["active"] == 3
        assert {k["keyword"] for k in data["items"]} == {"Nike", "Apple", "Tesla", "Netflix"}

    async def test_duplicate_returns_conflict(self, async_client: AsyncClient, keywords):
        response = await async_client.post(
            BASE, json={"keyword": "nike", "target_url": "https://nike.de"}
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Keyword already exists"

    async def test_invalid_url_returns_bad_request(self, async_client: AsyncClient):
        response = await async_client.post(BASE, json={"keyword": "Nike", "target_url": "nike.com"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid URL format"

    async def test_missing_field_fails_validation(self, async_client: AsyncClient):
        response = await async_client.post(BASE, json={"keyword": "Nike"})

        assert response.status_code == 422

    async def test_update(self, async_client: AsyncClient, keywords):
        nike = keywords[0]

        response = await async_client.put(
            f"{BASE}/{nike.id}",
            json={"keyword": "Nike Air", "target_url": "https://nike.com/air", "active": False},
        )

        assert response.status_code == 200
        assert response.json()["keyword"] == "Nike Air"
        assert response.json()["active"] is False

    async def test_update_missing_returns_404(self, async_client: AsyncClient):
        response = await async_client.put(
            f"{BASE}/999", json={"keyword": "Nike", "target_url": "https://nike.com"}
        )

        assert response.status_code == 404

    async def test_toggle(self, async_client: AsyncClient, keywords):
        netflix = keywords[3]

        response = await async_client.patch(f"{BASE}/{netflix.id}/toggle")

        assert response.status_code == 200
        assert response.json()["active"] is True

    async def test_delete(self, async_client: AsyncClient, keywords):
        tesla = keywords[2]

        response = await async_client.delete(f"{BASE}/{tesla.id}")

        assert response.status_code == 204
        assert (await async_client.get(f"{BASE}/{tesla.id}")).status_code == 404

    async def test_new_keyword_is_linked_after_cache_clear(self, async_client: AsyncClient):
        await async_client.post(BASE, json={"keyword": "Adidas", "target_url": "https://adidas.com"})
        await async_client.post("/api/v1/diagnostics/keyword-cache/clear")

        response = await async_client.post("/api/v1/chat/process", json={"content": "Adidas shoes"})

        assert 'href="https://adidas.com"' in response.json()["content"]


class TestBulkUpload:
    async def test_csv_upload(self, async_client: AsyncClient, keywords):
        csv_data = (
            b"keyword,url\n"
            b"Adidas,https://adidas.com\n"
            b"nike,https://nike.de\n"
            b"Broken,not-a-url\n"
            b'"Smith, Jones",https://sj.com\n'
        )

        response = await async_client.post(
            f"{BASE}/bulk", files={"file": ("keywords.csv", csv_data, "text/csv")}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["inserted"] == 2
        assert data["skipped"] == 1
        assert data["failed"] == 0
        assert data["total"] == 3
        assert data["invalid_rows"] == [
            {"row": 4, "keyword": "Broken", "url": "not-a-url", "reason": "Invalid URL format"}
        ]
        assert data["message"].startswith("Processed 3 keywords: 2 added")

        listing = (await async_client.get(BASE)).json()
        assert "Smith, Jones" in {k["keyword"] for k in listing["items"]}

    async def test_xlsx_upload(self, async_client: AsyncClient):
        data = _xlsx([("Keyword", "URL"), ("Puma", "https://puma.com"), ("Reebok", "https://reebok.com")])

        response = await async_client.post(
            f"{BASE}/bulk",
            files={
                "file": (
                    "keywords.xlsx",
                    data,
                    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                )
            },
        )

        assert response.status_code == 200
        assert response.json()["inserted"] == 2

    async def test_unsupported_extension(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{BASE}/bulk", files={"file": ("keywords.txt", b"Nike,https://nike.com", "text/plain")}
        )

        assert response.status_code == 400

    async def test_corrupt_spreadsheet(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{BASE}/bulk", files={"file": ("keywords.xlsx", b"not a zip", "application/octet-stream")}
        )

        assert response.status_code == 400
        assert "Excel" in response.json()["detail"]

    async def test_json_bulk(self, async_client: AsyncClient, keywords):
        payload = {
            "keywords": [
                {"keyword": "Adidas", "target_url": "https://adidas.com"},
                {"keyword": "APPLE", "target_url": "https://apple.de"},
                {"keyword": "Bad", "target_url": "ftp://bad.com"},
                {"keyword": "Hidden", "target_url": "https://hidden.com", "active": False},
            ]
        }

        response = await async_client.post(f"{BASE}/bulk/json", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["inserted"] == 2
        assert data["skipped"] == 1
        assert len(data["invalid_rows"]) == 1
        assert data["invalid_rows"][0]["row"] == 3


class TestTemplate:
    async def test_csv_template(self, async_client: AsyncClient):
        response = await async_client.get(f"{BASE}/template")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "keywords_template.csv" in response.headers["content-disposition"]
        lines = response.text.strip().split("\n")
        assert lines[0] == "keyword,url"
        assert lines[1] == "Nike,https://www.nike.com"

    async def test_xlsx_template(self, async_client: AsyncClient):
        response = await async_client.get(f"{BASE}/template", params={"format": "xlsx"})

        assert response.status_code == 200
        workbook = load_workbook(io.BytesIO(response.content))
        rows = list(workbook.active.iter_rows(values_only=True))
        assert rows[0] == ("keyword", "url")
        assert len(rows) == 6

    async def test_unknown_template_format(self, async_client: AsyncClient):
        response = await async_client.get(f"{BASE}/template", params={"format": "pdf"})

        assert response.status_code == 422
