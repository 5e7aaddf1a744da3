"""
Request payload schemas (pydantic).
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ecocatalog.models.product import DEFAULT_CATEGORY, DEFAULT_TITLE, DEFAULT_ZONES

ConfidenceColor = Literal['green', 'yellow', 'orange', 'red']
VerifiedStatus = Literal['verified', 'manual_review', 'rejected']


def _check_http_url(value: str) -> str:
    value = value.strip()
    if not value.lower().startswith(('http://', 'https://')):
        raise ValueError('must be an http(s) URL')
    return value


HttpUrl = Annotated[str, AfterValidator(_check_http_url)]


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    id: Optional[str] = Field(default=None, min_length=1)
    title: str = Field(default=DEFAULT_TITLE, min_length=1, max_length=200)
    description: str = ''
    slug: Optional[str] = Field(default=None, min_length=3)
    brand: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    tags: List[str] = Field(default_factory=list, max_length=10)
    images: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    zones_dispo: List[str] = Field(default_factory=lambda: list(DEFAULT_ZONES), min_length=1)
    prices: Dict[str, Any] = Field(default_factory=dict)
    affiliate_url: Optional[HttpUrl] = None
    verified_status: VerifiedStatus = 'manual_review'
    resume_fr: Optional[str] = None
    resume_en: Optional[str] = None


class ProductUpdate(BaseModel):
    """Partial update: only the fields present in the request are applied."""
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    slug: Optional[str] = Field(default=None, min_length=3)
    brand: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = Field(default=None, max_length=10)
    images: Optional[List[str]] = None
    image_url: Optional[str] = None
    zones_dispo: Optional[List[str]] = Field(default=None, min_length=1)
    prices: Optional[Dict[str, Any]] = None
    affiliate_url: Optional[HttpUrl] = None
    eco_score: Optional[float] = Field(default=None, ge=0, le=1)
    ai_confidence: Optional[float] = Field(default=None, ge=0, le=1)
    confidence_pct: Optional[int] = Field(default=None, ge=0, le=100)
    confidence_color: Optional[ConfidenceColor] = None
    verified_status: Optional[VerifiedStatus] = None
    resume_fr: Optional[str] = None
    resume_en: Optional[str] = None

    @field_validator('title', 'description', 'slug', 'category', 'tags', 'zones_dispo',
                     'verified_status', mode='before')
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError('cannot be null')
        return value


class ScoreRequest(BaseModel):
    """Body of POST /api/eco-score/calculate."""
    model_config = ConfigDict(extra='ignore')

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    brand: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator('tags', mode='before')
    @classmethod
    def _tags_as_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []


class PartnerCreate(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200)
    website: Optional[HttpUrl] = None


class PartnerLinkCreate(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    url: HttpUrl
    product_id: str = Field(min_length=1)
    partner_id: str = Field(min_length=1)


def validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    """JSON-safe summary of a pydantic error."""
    return [
        {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
        for err in exc.errors()
    ]
