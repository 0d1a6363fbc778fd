"""Product slug -> form schema, layout and preview renderer."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from forms import layouts, previews
from forms.schemas import (
    ChineseTrademarkForm,
    CompanyCheckupForm,
    EmptyForm,
    FormSchema,
    NnnAgreementForm,
    TrademarkChinaForm,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    slug: str
    schema: type[FormSchema]
    form: layouts.FormLayout
    preview: previews.PreviewRenderer
    document_type: str = "document"
    is_default: bool = False


@dataclass
class ValidationResult:
    valid: bool
    data: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


_ENTRIES: dict[str, RegistryEntry] = {
    entry.slug: entry
    for entry in (
        RegistryEntry(
            "nnn-agreement-cn", NnnAgreementForm, layouts.NNN_AGREEMENT_LAYOUT,
            previews.render_nnn_agreement, document_type="nnn_agreement",
        ),
        RegistryEntry(
            "company-checkup-cn", CompanyCheckupForm, layouts.COMPANY_CHECKUP_LAYOUT,
            previews.render_company_checkup, document_type="company_checkup",
        ),
        RegistryEntry(
            "trademark-china", TrademarkChinaForm, layouts.TRADEMARK_CHINA_LAYOUT,
            previews.render_trademark_application, document_type="trademark_application",
        ),
        RegistryEntry(
            "chinese-trademark", ChineseTrademarkForm, layouts.CHINESE_TRADEMARK_LAYOUT,
            previews.render_trademark_application, document_type="trademark_application",
        ),
    )
}

DEFAULT_ENTRY = RegistryEntry(
    "default", EmptyForm, layouts.DEFAULT_LAYOUT, previews.render_default, is_default=True
)


def known_slugs() -> list[str]:
    return sorted(_ENTRIES)


def lookup(slug: Optional[str]) -> RegistryEntry:
    """Return the entry for a product slug, or the default entry for unknown slugs."""
    entry = _ENTRIES.get(slug or "")
    if entry is None:
        logger.warning("No form registered for product slug %r, using default form", slug)
        return DEFAULT_ENTRY
    return entry


def normalize(schema: type[FormSchema], data: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase (or explicitly aliased) keys onto the schema's field names."""
    names: dict[str, str] = {}
    for name, info in schema.model_fields.items():
        names[name] = name
        names[to_camel(name)] = name
        if info.alias:
            names[info.alias] = name
    return {names.get(key, key): value for key, value in data.items()}


def _collect_errors(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        key = str(err["loc"][0]) if err["loc"] else "__root__"
        message = err["msg"].removeprefix("Value error, ")
        errors.setdefault(key, message)
    return errors


def validate(slug: Optional[str], data: dict[str, Any], page: Optional[int] = None) -> ValidationResult:
    """Validate a submission, or only the fields of one form page (1-based)."""
    entry = lookup(slug)
    page_fields = set(entry.form.fields_for_page(page - 1)) if page is not None else None
    normalized = normalize(entry.schema, data)
    try:
        model = entry.schema.model_validate(normalized)
    except ValidationError as exc:
        errors = _collect_errors(exc)
        if page_fields is not None:
            errors = {k: v for k, v in errors.items() if k in page_fields}
            if not errors:
                return ValidationResult(valid=True, data=normalized)
        return ValidationResult(valid=False, data=normalized, errors=errors)
    return ValidationResult(valid=True, data=model.model_dump(mode="json"))


def render_preview(
    slug: Optional[str], data: dict[str, Any], product: Optional[dict[str, Any]] = None
) -> previews.Preview:
    entry = lookup(slug)
    return entry.preview(normalize(entry.schema, data), product)
