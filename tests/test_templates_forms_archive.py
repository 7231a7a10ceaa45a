# tests/test_templates_forms_archive.py
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from app.crud.archived_pdf import (
    create_archived_pdf,
    get_archived_pdf_by_form,
    get_storage_stats,
    search_archived_pdfs,
    update_archived_pdf,
)
from app.crud.form import (
    ERR_DUPLICATE_NUMBER,
    create_form,
    get_form_with_template,
    get_forms_by_date_range,
    list_forms,
    search_forms_by_client_name,
    update_form,
)
from app.crud.template import (
    ERR_SLUG_TAKEN,
    create_template,
    delete_template,
    get_template_by_slug,
    list_templates,
    update_template,
)
from app.db.base import utcnow
from app.schemas.archived_pdf import ArchivedPDFCreate, ArchivedPDFOut, ArchivedPDFUpdate
from app.schemas.form import FormCreate, FormUpdate
from app.schemas.template import TemplateCreate, TemplateOut, TemplateSchema, TemplateUpdate

FIELDS = [
    {"id": "name", "type": "text", "label": "Nome", "required": True, "placeholder": "Mario Rossi"},
    {"id": "consent", "type": "checkbox", "label": "Consenso", "required": True},
    {"id": "sig", "type": "signature", "label": "Firma"},
]


@pytest.fixture
def studio(make_user, make_studio):
    alice = make_user("alice@inkart.it")
    return make_studio(alice)


@pytest.fixture
def template(db, studio):
    tpl, err = create_template(
        db, studio.id, TemplateCreate(name="Consenso Tatuaggio", schema={"fields": FIELDS}), studio.owner_id
    )
    assert err is None
    return tpl


# --- templates ---
def test_create_template(db, studio, template):
    assert template.slug == "consenso-tatuaggio"
    assert [f["id"] for f in template.schema["fields"]] == ["name", "consent", "sig"]
    # field-specific extras survive
    assert template.schema["fields"][0]["placeholder"] == "Mario Rossi"
    assert get_template_by_slug(db, studio.id, "consenso-tatuaggio").id == template.id

    out = TemplateOut.model_validate(template).model_dump(by_alias=True)
    assert out["schema"]["fields"][1]["type"] == "checkbox"


def test_template_slug_unique_per_studio(db, studio, template):
    tpl, err = create_template(db, studio.id, TemplateCreate(name="Consenso tatuaggio"), None)
    assert (tpl, err) == (None, ERR_SLUG_TAKEN)


def test_template_schema_validation():
    with pytest.raises(ValidationError) as exc:
        TemplateSchema(fields=[FIELDS[0], FIELDS[0]])
    assert "Campo duplicato: name" in str(exc.value)

    with pytest.raises(ValidationError):
        TemplateSchema(fields=[{"id": "x", "type": "dropdown", "label": "X"}])


def test_update_and_soft_delete_template(db, studio, template):
    updated, err = update_template(
        db, template, TemplateUpdate(description="v2", schema={"fields": FIELDS[:1]})
    )
    assert err is None
    assert updated.description == "v2"
    assert len(updated.schema["fields"]) == 1
    assert updated.name == "Consenso Tatuaggio"

    assert delete_template(db, template) == (True, None)
    assert list_templates(db, studio.id) == []


# --- forms ---
def _form(db, studio, template, **kw):
    kw.setdefault("client_name", "Mario Rossi")
    form, err = create_form(db, studio.id, FormCreate(template_id=template.id, **kw), studio.owner_id)
    assert err is None, err
    return form


def test_create_form(db, studio, template):
    form = _form(db, studio, template, form_data={"name": "Mario Rossi", "consent": True})
    assert form.status == "draft"
    assert form.form_number.startswith("F-")
    assert form.completed_at is None
    assert form.form_data == {"name": "Mario Rossi", "consent": True}

    loaded = get_form_with_template(db, form.id)
    assert loaded.template.id == template.id


def test_form_number_is_unique(db, studio, template):
    _form(db, studio, template, form_number="F-001")
    form, err = create_form(
        db, studio.id, FormCreate(template_id=template.id, client_name="Luca", form_number="F-001"), None
    )
    assert (form, err) == (None, ERR_DUPLICATE_NUMBER)


def test_status_changes_stamp_timestamps(db, studio, template):
    form = _form(db, studio, template, status="completed")
    assert form.completed_at is not None

    signature = {"fieldId": "sig", "imageData": "data:image/png;base64,AAAA", "timestamp": "2026-03-02T10:00:00Z"}
    signed, err = update_form(db, form, FormUpdate(status="signed", signatures=[signature]))
    assert err is None
    assert signed.signed_at is not None
    assert signed.signatures == [signature]
    assert [f.id for f in list_forms(db, studio.id, status="signed")] == [form.id]
    assert list_forms(db, studio.id, status="draft") == []


def test_form_searches(db, studio, template):
    mario = _form(db, studio, template, client_name="Mario Rossi")
    _form(db, studio, template, client_name="Giulia Bianchi")

    assert [f.id for f in search_forms_by_client_name(db, studio.id, "rossi")] == [mario.id]

    now = utcnow()
    in_range = get_forms_by_date_range(db, studio.id, now - timedelta(hours=1), now + timedelta(hours=1))
    assert len(in_range) == 2
    assert get_forms_by_date_range(db, studio.id, now - timedelta(days=3), now - timedelta(days=2)) == []


def test_form_create_requires_client_name():
    with pytest.raises(ValidationError):
        FormCreate(template_id=1, client_name="")
    with pytest.raises(ValidationError):
        FormCreate(template_id=0, client_name="Mario")


# --- archived pdfs ---
def _pdf(db, studio, form, **kw):
    data = dict(
        form_id=form.id,
        template_id=form.template_id,
        file_path=f"{studio.id}/{form.form_number}.pdf",
        file_name=f"{form.form_number}.pdf",
        file_size=1000,
        client_name=form.client_name,
        form_date=date(2026, 3, 2),
        form_type="Consenso Tatuaggio",
    )
    data.update(kw)
    pdf, err = create_archived_pdf(db, studio.id, ArchivedPDFCreate(**data), studio.owner_id)
    assert err is None, err
    return pdf


def test_archive_and_search(db, studio, template):
    mario = _form(db, studio, template, client_name="Mario Rossi")
    giulia = _form(db, studio, template, client_name="Giulia Bianchi")
    _pdf(db, studio, mario, form_date=date(2026, 1, 10), metadata={"pages": 2})
    _pdf(db, studio, giulia, form_date=date(2026, 2, 20), file_size=3000)

    rows, total = search_archived_pdfs(db, studio.id)
    assert total == 2
    # newest form_date first
    assert [r.client_name for r in rows] == ["Giulia Bianchi", "Mario Rossi"]

    rows, total = search_archived_pdfs(db, studio.id, client_name="ross")
    assert total == 1 and rows[0].form_id == mario.id
    assert rows[0].pdf_metadata == {"pages": 2}

    rows, total = search_archived_pdfs(db, studio.id, start_date=date(2026, 2, 1))
    assert [r.form_id for r in rows] == [giulia.id]

    rows, total = search_archived_pdfs(db, studio.id, limit=1, offset=1)
    assert total == 2
    assert [r.form_id for r in rows] == [mario.id]

    assert get_archived_pdf_by_form(db, mario.id).file_name == f"{mario.form_number}.pdf"

    stats = get_storage_stats(db, studio.id)
    assert stats["total_files"] == 2
    assert stats["total_size_bytes"] == 4000
    assert stats["oldest_file"] is not None


def test_archive_metadata_update(db, studio, template):
    form = _form(db, studio, template)
    pdf = _pdf(db, studio, form)

    updated, err = update_archived_pdf(db, pdf, ArchivedPDFUpdate(metadata={"signed": True}, is_encrypted=True))
    assert err is None
    assert updated.pdf_metadata == {"signed": True}
    assert updated.is_encrypted is True

    out = ArchivedPDFOut.model_validate(updated)
    assert out.metadata == {"signed": True}
    assert out.mime_type == "application/pdf"


def test_storage_stats_empty(db, studio):
    assert get_storage_stats(db, studio.id) == {
        "total_files": 0,
        "total_size_bytes": 0,
        "oldest_file": None,
        "newest_file": None,
    }
