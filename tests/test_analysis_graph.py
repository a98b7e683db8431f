"""End-to-end runs of the document analysis workflow."""

import json

import pytest

from app.config import settings
from app.graphs.document_analysis import run_document_analysis
from app.models.document import DocumentState, MedicalDocument
from app.models.finding import KeyFinding, Recommendation
from app.models.processing_log import ProcessingLog

from factories import ANALYSIS_OK, LAB_TEXT, create_document


async def _run(document, analysis_service, text=LAB_TEXT, document_type="PDF"):
    return await run_document_analysis(
        document_id=str(document.id),
        document_text=text,
        document_type=document_type,
        document_title=document.title,
        analysis_service=analysis_service,
    )


async def test_successful_analysis_completes_document(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue(ANALYSIS_OK)

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"
    assert result["summary"] == ANALYSIS_OK["summary"]
    assert result["processing_time"] >= 0
    assert not result.get("error")

    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.COMPLETED
    assert stored.status == "Analyzed"
    assert stored.summary == ANALYSIS_OK["summary"]
    assert stored.critical_values == ["Hemoglobin 11.2 g/dL"]
    assert stored.patient_info == {"date": "2024-03-02", "facility": "City Lab"}
    assert stored.error_message is None

    findings = await KeyFinding.find(KeyFinding.document_id == str(document.id)).to_list()
    assert {f.marker for f in findings} == {"Hemoglobin", "White blood cells"}
    recommendations = await Recommendation.find(Recommendation.document_id == str(document.id)).to_list()
    assert len(recommendations) == 2

    log = await ProcessingLog.find_one(ProcessingLog.document_id == str(document.id))
    assert log.status == "completed"
    assert log.request_payload["documentText"] == LAB_TEXT
    assert log.response_payload["summary"] == ANALYSIS_OK["summary"]
    assert log.completed_at is not None


async def test_single_finding_without_category(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue({"summary": "ok", "key_findings": [{"marker": "Diagnosis", "value": "Flu"}]})

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"
    findings = await KeyFinding.find(KeyFinding.document_id == str(document.id)).to_list()
    assert len(findings) == 1
    assert findings[0].value == "Flu"
    assert findings[0].category == "Other"


async def test_fenced_answer_is_parsed(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue("```json\n" + json.dumps(ANALYSIS_OK) + "\n```")

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"


async def test_empty_findings_use_fallback_result(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue(
        {"summary": "ok", "key_findings": []},
        [{"marker": "Glucose", "value": "5.4"}, {"value": "dropped"}],
    )

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"
    assert result["used_fallback"] is True
    assert len(fake_analysis.calls) == 2
    findings = await KeyFinding.find(KeyFinding.document_id == str(document.id)).to_list()
    assert [(f.marker, f.value) for f in findings] == [("Glucose", "5.4")]


async def test_empty_fallback_still_completes(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue({"summary": "ok", "key_findings": []}, "[]")

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"
    assert len(fake_analysis.calls) == 2
    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.COMPLETED
    assert await KeyFinding.find(KeyFinding.document_id == str(document.id)).count() == 0


async def test_failed_fallback_still_completes(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue({"summary": "ok", "key_findings": []}, "")

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"


async def test_fallback_array_after_prose_is_used(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue(
        {"summary": "CBC", "key_findings": []},
        'Here are the findings: [{"marker": "Hemoglobin", "value": "12.1 g/dL"}, '
        '{"marker": "WBC", "value": "6.4"}]',
    )

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"
    assert result["used_fallback"] is True
    findings = await KeyFinding.find(KeyFinding.document_id == str(document.id)).to_list()
    assert sorted(f.marker for f in findings) == ["Hemoglobin", "WBC"]


async def test_short_text_fails_without_calling_service(db, fake_analysis, analysis_service):
    document = await create_document()

    result = await _run(document, analysis_service, text="xq9z!kd0 pl2 mw8 a")

    assert result["error"].startswith("Could not extract text")
    assert result["error_status"] == 400
    assert fake_analysis.calls == []

    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.ERROR
    assert stored.status == "Error"
    assert stored.error_message.startswith("Processing failed: Could not extract text")

    log = await ProcessingLog.find_one(ProcessingLog.document_id == str(document.id))
    assert log.status == "error"


async def test_service_failure_marks_error(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue("no json here")

    result = await _run(document, analysis_service)

    assert result["error_status"] == 500
    assert result["processing_status"] == "error"
    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.ERROR


async def test_rejected_document_marks_error(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue({"error": "Not a medical document"})

    result = await _run(document, analysis_service, text="Shopping list: apples, pears, bread, milk")

    assert "Not a medical document" in result["error"]
    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.ERROR


async def test_rejected_lab_report_asks_to_retry(db, fake_analysis, analysis_service):
    document = await create_document()
    fake_analysis.queue({"error": "Unclear content"})

    result = await _run(document, analysis_service)

    assert "re-upload" in result["error"]
    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.ERROR


async def test_unknown_document_writes_nothing(db, fake_analysis, analysis_service):
    result = await run_document_analysis(
        document_id="65f000000000000000000000",
        document_text=LAB_TEXT,
        document_type="PDF",
        document_title="t",
        analysis_service=analysis_service,
    )

    assert result["error_status"] == 404
    assert fake_analysis.calls == []
    assert await ProcessingLog.find_all().count() == 0


@pytest.mark.parametrize("state", [DocumentState.COMPLETED, DocumentState.ERROR])
async def test_terminal_document_is_not_reprocessed(db, fake_analysis, analysis_service, state):
    document = await create_document(state=state)

    result = await _run(document, analysis_service)

    assert result["error_status"] == 409
    assert fake_analysis.calls == []
    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == state


async def test_document_left_processing_can_be_resumed(db, fake_analysis, analysis_service):
    document = await create_document(state=DocumentState.PROCESSING)
    fake_analysis.queue(ANALYSIS_OK)

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"


async def test_partial_persistence_completes_by_default(db, fake_analysis, analysis_service, monkeypatch):
    document = await create_document()
    fake_analysis.queue(ANALYSIS_OK)

    async def failing_insert_many(*args, **kwargs):
        raise RuntimeError("write failed")

    monkeypatch.setattr(Recommendation, "insert_many", failing_insert_many)

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "completed"
    assert result["failed_tables"] == ["recommendations"]
    log = await ProcessingLog.find_one(ProcessingLog.document_id == str(document.id))
    assert log.failed_tables == ["recommendations"]
    assert "recommendations" in log.error_message


async def test_partial_persistence_can_fail_document(db, fake_analysis, analysis_service, monkeypatch):
    monkeypatch.setattr(settings, "FAIL_ON_PARTIAL_PERSIST", True)
    document = await create_document()
    fake_analysis.queue(ANALYSIS_OK)

    async def failing_insert_many(*args, **kwargs):
        raise RuntimeError("write failed")

    monkeypatch.setattr(Recommendation, "insert_many", failing_insert_many)

    result = await _run(document, analysis_service)

    assert result["processing_status"] == "error"
    assert result["error_status"] == 500
    stored = await MedicalDocument.get(document.id)
    assert stored.processing_status == DocumentState.ERROR
    # Findings from the failed attempt are removed
    assert await KeyFinding.find(KeyFinding.document_id == str(document.id)).count() == 0


async def test_lookup_failure_marks_error(db, fake_analysis, analysis_service, monkeypatch):
    document = await create_document()
    original_get = MedicalDocument.get
    calls = []

    async def flaky_get(document_id, *args, **kwargs):
        calls.append(document_id)
        if len(calls) == 1:
            raise RuntimeError("connection reset")
        return await original_get(document_id, *args, **kwargs)

    monkeypatch.setattr(MedicalDocument, "get", flaky_get)

    result = await _run(document, analysis_service)

    assert result["error_status"] == 500
    assert result["processing_status"] == "error"
    assert "connection reset" in result["error"]
    assert fake_analysis.calls == []
    stored = await original_get(document.id)
    assert stored.processing_status == DocumentState.ERROR
    assert "connection reset" in stored.error_message
