"""Live previews for each product form.

A preview renderer takes partially filled form data (snake_case keys) and the
catalog product, and returns a ``Preview``: the document title, its sections
with placeholders for anything not yet entered, and a price estimate where the
product type prices by selection. The same renderer produces the final
document text once the submission validates.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional


@dataclass
class PreviewSection:
    heading: str
    paragraphs: list[str] = field(default_factory=list)


@dataclass
class Preview:
    title: str
    sections: list[PreviewSection]
    complete: bool = False
    price_estimate: Optional[int] = None  # minor units

    def to_text(self) -> str:
        lines = [self.title, ""]
        for section in self.sections:
            if section.heading:
                lines.append(section.heading)
            lines.extend(section.paragraphs)
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "sections": [
                {"heading": s.heading, "paragraphs": list(s.paragraphs)} for s in self.sections
            ],
            "complete": self.complete,
            "price_estimate": self.price_estimate,
        }


PreviewRenderer = Callable[[dict[str, Any], Optional[dict[str, Any]]], Preview]


def _v(data: dict, key: str, placeholder: str) -> str:
    value = data.get(key)
    if value is None or value == "" or value == []:
        return f"[{placeholder}]"
    return str(value)


def _base_price(product: Optional[dict], fallback: int) -> int:
    if product and product.get("base_price"):
        return int(product["base_price"])
    return fallback


def _today() -> str:
    return date.today().strftime("%B %d, %Y").replace(" 0", " ")


# ---------------------------------------------------------------------------
# NNN agreement
# ---------------------------------------------------------------------------

_PENALTY_CLAUSES = {
    "fixedAmount": (
        "In the event of a breach of this Agreement by Receiving Party, Receiving Party shall "
        "pay to Disclosing Party, as liquidated damages and not as a penalty, the sum of "
        "USD {amount}. The parties acknowledge that this sum is a reasonable forecast of just "
        "compensation for harm that would be difficult to estimate at the time of breach."
    ),
    "contractMultiple": (
        "In the event of a breach of this Agreement by Receiving Party, Receiving Party shall "
        "pay to Disclosing Party liquidated damages equal to {multiple} times the value of "
        "the contracts affected by the breach."
    ),
    "slidingScale": (
        "In the event of a breach of this Agreement by Receiving Party, Receiving Party shall "
        "be liable to Disclosing Party for all direct, indirect, consequential and special "
        "damages, including lost profits, and Disclosing Party shall be entitled to seek all "
        "available legal and equitable remedies, including injunctive relief."
    ),
}

_TRADEMARK_NOTES = {
    "have": "The Product is a registered trademark owned by Disclosing Party.",
    "want": "Disclosing Party intends to register the Product as a trademark.",
}


def render_nnn_agreement(data: dict[str, Any], product: Optional[dict[str, Any]] = None) -> Preview:
    disclosing = _v(data, "disclosing_party_name", "Disclosing Party")
    receiving = _v(data, "receiving_party_name", "Manufacturer")
    product_name = _v(data, "product_name", "Product")

    party_line = f"{disclosing}, a {_v(data, 'disclosing_party_type', 'party type')}"
    if data.get("disclosing_party_type") == "Corporation" and data.get("disclosing_party_business_number"):
        party_line += f" with business number {data['disclosing_party_business_number']}"
    if data.get("disclosing_party_address"):
        party_line += f", of {data['disclosing_party_address']}"

    receiving_line = receiving
    if data.get("receiving_party_name_chinese"):
        receiving_line += f" ({data['receiving_party_name_chinese']})"

    penalty = _PENALTY_CLAUSES.get(data.get("penalty_damages"), _PENALTY_CLAUSES["slidingScale"])
    penalty = penalty.format(
        amount=_v(data, "penalty_amount", "amount"),
        multiple=_v(data, "penalty_multiple", "multiple"),
    )

    description = [_v(data, "product_description", "Product description")]
    note = _TRADEMARK_NOTES.get(data.get("product_trademark"))
    if note:
        description.append(note)

    sections = [
        PreviewSection("", [f"Date: {_today()}"]),
        PreviewSection("", [
            'This Non-Disclosure, Non-Use and Non-Circumvention Agreement (the "Agreement") is '
            "entered into as of the date of signature by and between:",
        ]),
        PreviewSection("DISCLOSING PARTY:", [party_line]),
        PreviewSection("RECEIVING PARTY:", [
            receiving_line,
            f"Address: {_v(data, 'receiving_party_address', 'Manufacturer address')}",
            f"USCC: {_v(data, 'receiving_party_uscc', 'USCC')}",
        ]),
        PreviewSection("WHEREAS:", [
            "Disclosing Party wishes to disclose to Receiving Party certain confidential "
            f'information in relation to {product_name} (the "Product") for the purpose of '
            "evaluation and potential business cooperation, and Receiving Party wishes to receive "
            "such information subject to the terms and conditions set forth in this Agreement.",
        ]),
        PreviewSection("1. Confidential Information", [
            '"Confidential Information" means any and all information disclosed by Disclosing '
            "Party to Receiving Party, whether orally, in writing, or by any other means, relating "
            "to the Product, including technical data, trade secrets, know-how, product plans, "
            "designs, drawings, customers, markets and other business information.",
        ]),
        PreviewSection("2. Non-Disclosure and Non-Use", [
            "Receiving Party agrees not to disclose any Confidential Information to any third "
            "party and not to use any Confidential Information for any purpose other than "
            "evaluation and potential business cooperation.",
        ]),
        PreviewSection("3. Non-Circumvention", [
            "Receiving Party agrees not to circumvent Disclosing Party in any way with respect to "
            "the Product, including contacting manufacturers, suppliers, distributors, customers "
            "or business partners of Disclosing Party without prior written consent.",
        ]),
        PreviewSection("4. Product Description", description),
        PreviewSection("5. Arbitration", [
            "Any dispute arising out of or in connection with this Agreement shall be referred to "
            f"and finally resolved by arbitration administered by the "
            f"{_v(data, 'arbitration', 'arbitration venue')} in accordance with its rules.",
        ]),
        PreviewSection("6. Penalty for Breach", [penalty]),
        PreviewSection("7. Term", [
            "This Agreement remains in force for "
            f"{_v(data, 'agreement_duration', 'duration')} {_v(data, 'duration_type', 'years')} "
            "from the date of signature.",
        ]),
        PreviewSection("8. Governing Law", [
            "This Agreement shall be governed by the laws of "
            f"{_v(data, 'disclosing_party_jurisdiction', 'jurisdiction')}, "
            f"{_v(data, 'disclosing_party_country', 'country')}, without giving effect to any "
            "conflict of law provisions.",
        ]),
        PreviewSection("IN WITNESS WHEREOF", [
            "the parties have executed this Agreement as of the date first above written.",
            f"DISCLOSING PARTY: {disclosing}    Signature: ____________  Date: ____________",
            f"RECEIVING PARTY: {receiving}    Signature: ____________  Date: ____________",
        ]),
    ]
    return Preview(
        title="NON-DISCLOSURE, NON-USE AND NON-CIRCUMVENTION AGREEMENT",
        sections=sections,
        complete="[" not in "".join(p for s in sections for p in s.paragraphs),
        price_estimate=_base_price(product, 0) or None,
    )


# ---------------------------------------------------------------------------
# Company checkup
# ---------------------------------------------------------------------------

CHECKUP_TIER_MULTIPLIERS = {"Basic": 1.0, "Premium": 2.5, "Complete": 5.0}
CHECKUP_ADD_ONS = {
    "factory_inspection": ("Factory inspection", 30000),
    "records_check": ("Records check", 20000),
    "meeting_with_manufacturer": ("Meeting with manufacturer", 50000),
    "background_check": ("Background check", 25000),
}
CHECKUP_SERVICES = {
    "Basic": ["Business registration verification", "USCC validation", "Registered capital and scope"],
    "Premium": ["Litigation and administrative penalty search", "Shareholder and management review"],
    "Complete": ["Credit report", "Export record review"],
}


def checkup_price(data: dict[str, Any], product: Optional[dict[str, Any]] = None) -> int:
    tier = data.get("tier") or "Basic"
    price = int(_base_price(product, 19900) * CHECKUP_TIER_MULTIPLIERS.get(tier, 1.0))
    if tier == "Complete":
        price += sum(cost for key, (_, cost) in CHECKUP_ADD_ONS.items() if data.get(key))
    return price


def render_company_checkup(data: dict[str, Any], product: Optional[dict[str, Any]] = None) -> Preview:
    tier = data.get("tier") or "Basic"
    services = list(CHECKUP_SERVICES["Basic"])
    if tier in ("Premium", "Complete"):
        services += CHECKUP_SERVICES["Premium"]
    if tier == "Complete":
        services += CHECKUP_SERVICES["Complete"]
        services += [label for key, (label, _) in CHECKUP_ADD_ONS.items() if data.get(key)]

    name = _v(data, "manufacturer_name", "Manufacturer name")
    if data.get("manufacturer_name_chinese"):
        name += f" ({data['manufacturer_name_chinese']})"

    sections = [
        PreviewSection("Manufacturer", [
            name,
            f"USCC: {_v(data, 'uscc_number', 'USCC')}",
            f"{_v(data, 'address', 'Address')}, {_v(data, 'city', 'City')}, "
            f"{_v(data, 'province', 'Province')}",
        ]),
        PreviewSection(f"{tier} Tier", [f"- {s}" for s in services]),
        PreviewSection("Report Delivery", [
            f"Contact: {_v(data, 'contact_name', 'Contact name')}",
            f"Email: {_v(data, 'contact_email', 'Contact email')}",
        ]),
    ]
    if data.get("additional_notes"):
        sections.append(PreviewSection("Notes", [data["additional_notes"]]))
    return Preview(
        title="MANUFACTURER COMPANY CHECKUP REQUEST",
        sections=sections,
        complete=bool(data.get("manufacturer_name") and data.get("uscc_number") and data.get("contact_email")),
        price_estimate=checkup_price(data, product),
    )


# ---------------------------------------------------------------------------
# Trademark filings
# ---------------------------------------------------------------------------

TRADEMARK_CLASS_FEE = 10000
TRADEMARK_EXPEDITE_FEE = 20000


def trademark_price(data: dict[str, Any], product: Optional[dict[str, Any]] = None) -> int:
    classes = data.get("trademark_classes") or []
    expedited = data.get("expedited_examination") or data.get("express_examination")
    return (
        _base_price(product, 25000)
        + TRADEMARK_CLASS_FEE * len(classes)
        + (TRADEMARK_EXPEDITE_FEE if expedited else 0)
    )


def render_trademark_application(data: dict[str, Any], product: Optional[dict[str, Any]] = None) -> Preview:
    applicant = _v(data, "applicant_name", "Applicant name")
    if data.get("applicant_name_chinese"):
        applicant += f" ({data['applicant_name_chinese']})"
    mark = _v(data, "trademark_name", "Trademark")
    if data.get("trademark_name_chinese"):
        mark += f" / {data['trademark_name_chinese']}"

    classes = data.get("trademark_classes") or []
    sections = [
        PreviewSection("Applicant", [
            f"{applicant}, {_v(data, 'applicant_type', 'Applicant type')}",
            _v(data, "applicant_address", "Address"),
            _v(data, "applicant_country", "Country"),
            f"Email: {_v(data, 'applicant_email', 'Email')}  Phone: {_v(data, 'applicant_phone', 'Phone')}",
        ]),
        PreviewSection("Trademark", [
            f"{mark} ({_v(data, 'trademark_type', 'Mark type')})",
            _v(data, "trademark_description", "Description"),
        ]),
        PreviewSection(
            "Classification",
            [f"- {c}" for c in classes] or ["[Select at least one class]"],
        ),
    ]
    if data.get("has_chinese_agent"):
        sections.append(PreviewSection("Chinese Agent", [
            _v(data, "agent_name", "Agent name"),
            f"{_v(data, 'agent_city', 'City')}, {_v(data, 'agent_province', 'Province')}",
        ]))
    if data.get("priority_claim"):
        number = data.get("priority_application_number") or data.get("priority_number")
        sections.append(PreviewSection("Priority Claim", [
            f"Country: {_v(data, 'priority_country', 'Country')}",
            f"Application: {number or '[Application number]'}",
        ]))
    extras = [
        label
        for key, label in (
            ("expedited_examination", "Expedited examination"),
            ("express_examination", "Express examination"),
            ("preliminary_clearance_search", "Preliminary clearance search"),
            ("chinese_name_creation", "Chinese name creation"),
            ("opposition_monitoring", "Opposition monitoring"),
        )
        if data.get(key)
    ]
    if extras:
        sections.append(PreviewSection("Additional Services", [f"- {e}" for e in extras]))
    tier = data.get("service_tier")
    return Preview(
        title=f"CHINA TRADEMARK APPLICATION{f' ({tier.upper()})' if tier else ''}",
        sections=sections,
        complete=bool(data.get("applicant_name") and data.get("trademark_name") and classes),
        price_estimate=trademark_price(data, product),
    )


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

def render_default(data: dict[str, Any], product: Optional[dict[str, Any]] = None) -> Preview:
    title = (product or {}).get("name") or "Document"
    rows = [f"{key}: {value}" for key, value in sorted(data.items()) if value not in (None, "")]
    return Preview(
        title=title.upper(),
        sections=[PreviewSection("No preview available for this product.", rows)],
        complete=False,
        price_estimate=_base_price(product, 0) or None,
    )
