"""Document upload and dashboard endpoints."""

from datetime import timedelta

import fitz
import pytest

from app.config import settings
from app.models.document import DocumentState, MedicalDocument
from app.models.finding import KeyFinding, Recommendation
from app.models.processing_log import ProcessingLog
from app.shared.models import utcnow

from factories import ANALYSIS_OK, LAB_TEXT, create_document, create_subscription

API = settings.API_V1_PREFIX


def make_pdf(text: str = LAB_TEXT, password: str = None) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text[:80])
    page.insert_text((72, 90), text[80:])
    if password:
        data = doc.tobytes(
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw=password,
            user_pw=password,
        )
    else:
        data = doc.tobytes()
    doc.close()
    return data


async def test_upload_creates_and_analyzes_document(client, auth_headers, fake_analysis):
    await create_subscription()
    fake_analysis.queue(ANALYSIS_OK)

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Blood panel"},
        files=[("files", ("report.pdf", make_pdf(), "application/pdf"))],
        headers=auth_headers,
    )

    assert response.status_code == 201
    created = response.json()["documents"]
    assert len(created) == 1
    assert created[0]["title"] == "Blood panel"
    assert created[0]["type"] == "PDF"
    assert created[0]["processing_status"] == "pending"
    assert created[0]["status"] == "Processing"
    assert created[0]["file_path"].startswith("user-1/")

    # Background analysis has run by the time the ASGI call returns
    stored = await MedicalDocument.get(created[0]["id"])
    assert stored.processing_status == DocumentState.COMPLETED
    assert "Hemoglobin" in fake_analysis.calls[0]["messages"][1]["content"]


async def test_upload_multiple_files_numbers_titles(client, auth_headers, fake_analysis):
    await create_subscription()
    fake_analysis.queue(ANALYSIS_OK, ANALYSIS_OK)

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Checkup"},
        files=[
            ("files", ("a.pdf", make_pdf(), "application/pdf")),
            ("files", ("b.pdf", make_pdf(), "application/pdf")),
        ],
        headers=auth_headers,
    )

    assert response.status_code == 201
    titles = [d["title"] for d in response.json()["documents"]]
    assert titles == ["Checkup (1)", "Checkup (2)"]


async def test_upload_reports_failed_files_alongside_created(client, auth_headers, fake_analysis):
    await create_subscription()
    fake_analysis.queue(ANALYSIS_OK)

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Mixed"},
        files=[
            ("files", ("good.pdf", make_pdf(), "application/pdf")),
            ("files", ("broken.pdf", b"not a pdf", "application/pdf")),
        ],
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert len(data["documents"]) == 1
    assert data["failed"] == [{"filename": "broken.pdf", "error": "Could not read file"}]


async def test_upload_protected_pdf_without_password(client, auth_headers):
    await create_subscription()

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Locked"},
        files=[("files", ("locked.pdf", make_pdf(password="s3cret"), "application/pdf"))],
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "PDF password required"
    assert await MedicalDocument.find_all().count() == 0


async def test_upload_protected_pdf_with_wrong_password(client, auth_headers):
    await create_subscription()

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Locked", "pdf_password": "wrong"},
        files=[("files", ("locked.pdf", make_pdf(password="s3cret"), "application/pdf"))],
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Incorrect password"


async def test_upload_protected_pdf_with_password(client, auth_headers, fake_analysis):
    await create_subscription()
    fake_analysis.queue(ANALYSIS_OK)

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Locked", "pdf_password": "s3cret"},
        files=[("files", ("locked.pdf", make_pdf(password="s3cret"), "application/pdf"))],
        headers=auth_headers,
    )

    assert response.status_code == 201


async def test_upload_unsupported_type(client, auth_headers):
    await create_subscription()

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Notes"},
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
        headers=auth_headers,
    )

    assert response.status_code == 400


async def test_upload_without_subscription_is_refused(client, auth_headers, fake_analysis):
    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Blood panel"},
        files=[("files", ("report.pdf", make_pdf(), "application/pdf"))],
        headers=auth_headers,
    )

    assert response.status_code == 402
    assert fake_analysis.calls == []


async def test_upload_over_quota_is_refused(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "MONTHLY_REPORT_LIMIT", 1)
    await create_subscription()
    await create_document()

    response = await client.post(
        f"{API}/documents/upload",
        data={"title": "Blood panel"},
        files=[("files", ("report.pdf", make_pdf(), "application/pdf"))],
        headers=auth_headers,
    )

    assert response.status_code == 402
    assert "monthly report limit" in response.json()["detail"]


async def test_list_documents_newest_first(client, auth_headers):
    older = await create_document(title="older")
    older.created_at = utcnow() - timedelta(days=1)
    await older.save()
    await create_document(title="newer")
    await create_document(user_id="user-2", title="not mine")

    response = await client.get(f"{API}/documents", headers=auth_headers)

    assert response.status_code == 200
    assert [d["title"] for d in response.json()] == ["newer", "older"]


async def test_pending_document_detail_has_no_results(client, auth_headers):
    document = await create_document(file_path="user-1/abc_report.pdf")
    await KeyFinding(document_id=str(document.id), marker="stale", value="x").insert()

    response = await client.get(f"{API}/documents/{document.id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Processing"
    assert data["key_findings"] == []
    assert data["recommendations"] == []
    assert data["file_url"].startswith("http://test/files/user-1/abc_report.pdf?expires=")


async def test_completed_document_detail(client, auth_headers):
    document = await create_document(state=DocumentState.COMPLETED)
    document.summary = "All good"
    document.patient_info = {"provider": "Dr. Lee"}
    await document.save()
    await KeyFinding(document_id=str(document.id), marker="LDL", value="130", category="Lab Result").insert()
    await Recommendation(document_id=str(document.id), content="Retest in 6 months").insert()

    response = await client.get(f"{API}/documents/{document.id}", headers=auth_headers)

    data = response.json()
    assert data["status"] == "Analyzed"
    assert data["summary"] == "All good"
    assert data["key_findings"][0]["marker"] == "LDL"
    assert data["recommendations"] == ["Retest in 6 months"]
    assert data["metadata"] == {"patient_info": {"provider": "Dr. Lee"}}


@pytest.mark.parametrize("document_id", ["65f000000000000000000000", "garbage"])
async def test_unknown_document_detail_is_404(client, auth_headers, document_id):
    response = await client.get(f"{API}/documents/{document_id}", headers=auth_headers)
    assert response.status_code == 404


async def test_other_users_document_is_hidden(client, auth_headers):
    document = await create_document(user_id="user-2")

    response = await client.get(f"{API}/documents/{document.id}", headers=auth_headers)

    assert response.status_code == 404


async def test_delete_document_cascades(client, auth_headers, tmp_path):
    stored_file = tmp_path / "uploads" / "user-1" / "abc_report.pdf"
    stored_file.parent.mkdir(parents=True)
    stored_file.write_bytes(b"%PDF")
    document = await create_document(state=DocumentState.COMPLETED, file_path="user-1/abc_report.pdf")
    document_id = str(document.id)
    await KeyFinding(document_id=document_id, marker="LDL", value="130").insert()
    await Recommendation(document_id=document_id, content="Retest").insert()
    await ProcessingLog(document_id=document_id, status="completed").insert()

    response = await client.delete(f"{API}/documents/{document_id}", headers=auth_headers)

    assert response.status_code == 200
    assert await MedicalDocument.get(document_id) is None
    assert await KeyFinding.find(KeyFinding.document_id == document_id).count() == 0
    assert await Recommendation.find(Recommendation.document_id == document_id).count() == 0
    assert await ProcessingLog.find(ProcessingLog.document_id == document_id).count() == 0
    assert not stored_file.exists()


async def test_delete_tolerates_missing_file(client, auth_headers):
    document = await create_document(file_path="user-1/gone.pdf")

    response = await client.delete(f"{API}/documents/{document.id}", headers=auth_headers)

    assert response.status_code == 200


async def test_usage_summary(client, auth_headers):
    subscription = await create_subscription()
    await create_document(state=DocumentState.COMPLETED)
    await create_document(state=DocumentState.ERROR)
    await create_document()

    response = await client.get(f"{API}/documents/usage/summary", headers=auth_headers)

    data = response.json()
    assert data["totalDocuments"] == 3
    assert data["processedDocuments"] == 1
    assert data["subscriptionType"] == "Monthly"
    assert data["nextBillingDate"].startswith(subscription.current_period_end.isoformat()[:19])


async def test_usage_summary_without_subscription(client, auth_headers):
    response = await client.get(f"{API}/documents/usage/summary", headers=auth_headers)

    data = response.json()
    assert data["subscriptionType"] == "Free"
    assert data["nextBillingDate"] is None
