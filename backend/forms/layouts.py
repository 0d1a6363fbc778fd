"""Multi-page form layouts.

Each page lists the fields validated when the user leaves that page. The final
page of every product form is a confirmation page with no fields.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FormPage:
    title: str
    fields: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FormLayout:
    pages: tuple[FormPage, ...]

    def fields_for_page(self, index: int) -> tuple[str, ...]:
        if index < 0 or index >= len(self.pages):
            raise IndexError(f"Form has {len(self.pages)} pages, got page {index + 1}")
        return self.pages[index].fields

    def to_dict(self) -> dict:
        return {
            "pages": [
                {"number": i + 1, "title": page.title, "fields": list(page.fields)}
                for i, page in enumerate(self.pages)
            ]
        }


NNN_AGREEMENT_LAYOUT = FormLayout(pages=(
    FormPage("Your Information", (
        "disclosing_party_type",
        "disclosing_party_name",
        "disclosing_party_address",
        "disclosing_party_country",
        "disclosing_party_jurisdiction",
    )),
    FormPage("Manufacturer Information", (
        "receiving_party_name",
        "receiving_party_name_chinese",
        "receiving_party_address",
        "receiving_party_uscc",
    )),
    FormPage("Product & Terms", (
        "product_name",
        "product_description",
        "product_trademark",
        "arbitration",
        "penalty_damages",
        "agreement_duration",
        "duration_type",
    )),
    FormPage("Review & Confirm"),
))

COMPANY_CHECKUP_LAYOUT = FormLayout(pages=(
    FormPage("Manufacturer Details", (
        "manufacturer_name",
        "uscc_number",
        "address",
        "city",
        "province",
        "tier",
    )),
    FormPage("Contact Information", ("contact_email",)),
    FormPage("Review & Confirm"),
))

TRADEMARK_CHINA_LAYOUT = FormLayout(pages=(
    FormPage("Service Tier", ("service_tier",)),
    FormPage("Applicant", (
        "applicant_type",
        "applicant_name",
        "applicant_address",
        "applicant_city",
        "applicant_country",
        "applicant_email",
        "applicant_phone",
    )),
    FormPage("Trademark", (
        "trademark_name",
        "trademark_type",
        "trademark_description",
        "trademark_classes",
    )),
    FormPage("Additional Services", ("contact_preference", "agree_to_terms")),
    FormPage("Review & Confirm"),
))

CHINESE_TRADEMARK_LAYOUT = FormLayout(pages=(
    FormPage("Applicant", (
        "applicant_type",
        "applicant_name",
        "applicant_address",
        "applicant_country",
        "applicant_email",
        "applicant_phone",
    )),
    FormPage("Trademark", (
        "trademark_name",
        "trademark_type",
        "trademark_description",
        "trademark_classes",
    )),
    FormPage("Review & Confirm"),
))

DEFAULT_LAYOUT = FormLayout(pages=(FormPage("Details"),))
