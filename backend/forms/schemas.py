"""Validation schemas for the document-generation forms, one per product type.

Field names are snake_case; the storefront posts camelCase, so every schema
accepts both (``alias_generator=to_camel`` + ``populate_by_name``).
"""

import re
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

USCC_PATTERN = re.compile(r"^[0-9A-Z]{18}$")

TRADEMARK_TYPES = (
    "Word Mark",
    "Logo/Design Mark",
    "Combined Word and Design Mark",
    "Sound Mark",
    "3D Mark",
)

# Nice Classification
TRADEMARK_CLASSES = (
    "Class 1: Chemicals",
    "Class 2: Paints",
    "Class 3: Cosmetics and cleaning preparations",
    "Class 4: Lubricants and fuels",
    "Class 5: Pharmaceuticals",
    "Class 6: Metal goods",
    "Class 7: Machinery",
    "Class 8: Hand tools",
    "Class 9: Electrical and scientific apparatus",
    "Class 10: Medical apparatus",
    "Class 11: Environmental control apparatus",
    "Class 12: Vehicles",
    "Class 13: Firearms",
    "Class 14: Jewelry",
    "Class 15: Musical instruments",
    "Class 16: Paper goods and printed matter",
    "Class 17: Rubber goods",
    "Class 18: Leather goods",
    "Class 19: Non-metallic building materials",
    "Class 20: Furniture and articles not otherwise classified",
    "Class 21: Housewares and glass",
    "Class 22: Cordage and fibers",
    "Class 23: Yarns and threads",
    "Class 24: Fabrics",
    "Class 25: Clothing",
    "Class 26: Fancy goods",
    "Class 27: Floor coverings",
    "Class 28: Toys and sporting goods",
    "Class 29: Meats and processed foods",
    "Class 30: Staple foods",
    "Class 31: Natural agricultural products",
    "Class 32: Light beverages",
    "Class 33: Wines and spirits",
    "Class 34: Smokers' articles",
    "Class 35: Advertising and business services",
    "Class 36: Insurance and financial services",
    "Class 37: Building construction and repair",
    "Class 38: Telecommunications",
    "Class 39: Transportation and storage",
    "Class 40: Treatment of materials",
    "Class 41: Education and entertainment",
    "Class 42: Scientific & technological services",
    "Class 43: Food services",
    "Class 44: Medical, beauty & agricultural services",
    "Class 45: Personal and legal services",
)

CHINA_REGIONS = (
    "Beijing", "Shanghai", "Guangdong", "Jiangsu", "Zhejiang", "Shandong",
    "Fujian", "Sichuan", "Hubei", "Henan", "Liaoning", "Shaanxi", "Anhui",
    "Tianjin", "Chongqing", "Jilin", "Yunnan", "Hebei", "Hunan", "Guangxi",
    "Shanxi", "Guizhou", "Jiangxi", "Heilongjiang", "Hainan", "Gansu",
    "Inner Mongolia", "Xinjiang", "Tibet", "Ningxia", "Qinghai",
    "Hong Kong SAR", "Macau SAR", "Taiwan Region",
)

PRIORITY_COUNTRIES = (
    "United States", "European Union", "United Kingdom", "Japan", "South Korea",
    "Australia", "Canada", "Singapore", "Switzerland", "New Zealand", "Other",
)

ARBITRATION_VENUES = (
    "CIETAC Beijing",
    "CIETAC Shanghai",
    "HKIAC",
    "SHENZHEN COURT OF INTERNATIONAL ARBITRATION",
)

CHECKUP_TIERS = ("Basic", "Premium", "Complete")
SERVICE_TIERS = ("Standard", "Premium", "Comprehensive")


def _check_uscc(value: str) -> str:
    """USCC (Unified Social Credit Code): 18 upper-case letters or digits."""
    if not USCC_PATTERN.match(value):
        raise ValueError("Please enter a valid 18-character USCC number")
    return value


RequiredStr = Annotated[str, Field(min_length=1)]
Uscc = Annotated[str, AfterValidator(_check_uscc)]


class FormSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        loc_by_alias=False,
        str_strip_whitespace=True,
    )


class EmptyForm(FormSchema):
    """Permissive schema used when a product has no registered form."""
    model_config = ConfigDict(extra="allow")


class NnnAgreementForm(FormSchema):
    # Disclosing party
    disclosing_party_type: Literal["Individual", "Corporation", "Other"]
    disclosing_party_name: RequiredStr
    disclosing_party_address: RequiredStr
    disclosing_party_business_number: Optional[str] = None
    disclosing_party_country: RequiredStr
    disclosing_party_jurisdiction: RequiredStr

    # Receiving party (manufacturer)
    receiving_party_name: RequiredStr
    receiving_party_name_chinese: RequiredStr
    chinese_name_verified: Optional[Literal["needCheckup", "willConfirm"]] = None
    receiving_party_address: RequiredStr
    receiving_party_uscc: Uscc = Field(alias="receivingPartyUSCC")
    uscc_verified: Optional[Literal["needCheckup", "willConfirm"]] = Field(None, alias="usccVerified")
    order_checkup: Optional[bool] = None

    # Product
    product_name: RequiredStr
    product_description: str = Field(min_length=10)
    product_trademark: Literal["want", "have", "notInterested"]

    # Terms
    arbitration: Literal[ARBITRATION_VENUES]
    penalty_damages: Literal["fixedAmount", "contractMultiple", "slidingScale"]
    penalty_amount: Optional[str] = None
    penalty_multiple: Optional[str] = None
    agreement_duration: int = Field(ge=1)
    duration_type: Literal["years", "months"]

    email: Optional[EmailStr] = None


class CompanyCheckupForm(FormSchema):
    manufacturer_name: RequiredStr
    manufacturer_name_chinese: Optional[str] = None
    uscc_number: Uscc
    address: RequiredStr
    city: RequiredStr
    province: RequiredStr

    tier: Literal[CHECKUP_TIERS]

    year_established: Optional[str] = None
    employee_count: Optional[str] = None
    business_scope: Optional[str] = None
    products_manufactured: Optional[str] = None
    industry_focus: Optional[str] = None

    contact_name: Optional[str] = None
    contact_email: EmailStr
    contact_phone: Optional[str] = None

    # Complete tier only
    factory_inspection: Optional[bool] = None
    records_check: Optional[bool] = None
    meeting_with_manufacturer: Optional[bool] = None
    background_check: Optional[bool] = None

    additional_notes: Optional[str] = None


class TrademarkChinaForm(FormSchema):
    service_tier: Literal[SERVICE_TIERS]

    applicant_type: Literal["Individual", "Corporation", "Partnership", "LLC"]
    applicant_name: RequiredStr
    applicant_name_chinese: Optional[str] = None
    applicant_address: RequiredStr
    applicant_city: RequiredStr
    applicant_country: RequiredStr
    applicant_email: EmailStr
    applicant_phone: RequiredStr

    has_chinese_agent: bool = False
    agent_name: Optional[str] = None
    agent_address: Optional[str] = None
    agent_city: Optional[str] = None
    agent_province: Optional[Literal[CHINA_REGIONS]] = None

    trademark_name: RequiredStr
    trademark_name_chinese: Optional[str] = None
    trademark_type: Literal[TRADEMARK_TYPES]
    trademark_description: str = Field(min_length=10)
    trademark_classes: list[Literal[TRADEMARK_CLASSES]] = Field(min_length=1)

    priority_claim: bool = False
    priority_country: Optional[Literal[PRIORITY_COUNTRIES]] = None
    priority_application_number: Optional[str] = None
    priority_filing_date: Optional[str] = None

    expedited_examination: bool = False
    preliminary_clearance_search: bool = False
    chinese_name_creation: bool = False
    opposition_monitoring: bool = False

    additional_instructions: Optional[str] = None
    contact_preference: Literal["Email", "Phone", "Both"] = "Email"
    agree_to_terms: bool

    @field_validator("agree_to_terms")
    @classmethod
    def _must_agree(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must agree to the terms and conditions")
        return value


class ChineseTrademarkForm(FormSchema):
    applicant_type: Literal["Individual", "Corporation", "Partnership", "LLC"]
    applicant_name: RequiredStr
    applicant_name_chinese: Optional[str] = None
    applicant_address: RequiredStr
    applicant_country: RequiredStr
    applicant_email: EmailStr
    applicant_phone: RequiredStr

    trademark_name: RequiredStr
    trademark_name_chinese: Optional[str] = None
    trademark_type: Literal[TRADEMARK_TYPES]
    trademark_description: str = Field(min_length=10)
    trademark_classes: list[Literal[TRADEMARK_CLASSES]] = Field(min_length=1)

    priority_claim: bool = False
    priority_country: Optional[str] = None
    priority_date: Optional[str] = None
    priority_number: Optional[str] = None

    express_examination: bool = False
    additional_info: Optional[str] = None
