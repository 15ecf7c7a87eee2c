from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


SalaryCurrency = Literal["USD", "EUR", "GBP", "RON", "CHF", ""]

UNKNOWN_SALARY = -1  # Sentinel for a salary bound that could not be determined


class SearchQuery(BaseModel):
    """One cell of the search space: a query term and a location filter ("" = any)."""
    model_config = ConfigDict(frozen=True)

    text: str
    location: str = ""


class PageRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: SearchQuery
    page_index: int = Field(default=0, ge=0)

    def next(self) -> "PageRequest":
        return PageRequest(query=self.query, page_index=self.page_index + 1)


class JobRecord(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str = ""  # data-entity-urn of the listing card, empty when missing
    title: str
    company: str
    company_url: Optional[str] = None
    url: str = Field(min_length=1)
    location: str
    country_text: str = ""  # Location filter of the search that found the record
    img: Optional[str] = None
    remote: bool = False
    posted_date: date
    scrape_date: date
    salary_min: float = UNKNOWN_SALARY
    salary_max: float = UNKNOWN_SALARY
    salary_currency: SalaryCurrency = ""
    description: str = ""  # Filled by the description fetcher
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, tags: List[str]) -> List[str]:
        return list(dict.fromkeys(tag.lower() for tag in tags))

    @model_validator(mode="after")
    def _check_salary_range(self) -> "JobRecord":
        if (
            self.salary_min != UNKNOWN_SALARY
            and self.salary_max != UNKNOWN_SALARY
            and self.salary_min > self.salary_max
        ):
            raise ValueError(f"salary_min {self.salary_min} is greater than salary_max {self.salary_max}")
        return self


class PageResult(BaseModel):
    """Records found on one listing page; the unit handed to a sink."""
    query: SearchQuery
    page_index: int = Field(ge=0)
    records: List[JobRecord] = Field(default_factory=list)
    error: Optional[str] = None  # Set when the page failed after retries


class ExtractionDiagnostic(BaseModel):
    item_index: int
    reason: str
    source_url: str = ""


class ExtractionResult(BaseModel):
    records: List[JobRecord] = Field(default_factory=list)
    diagnostics: List[ExtractionDiagnostic] = Field(default_factory=list)


class CrawlSummary(BaseModel):
    queries_planned: int = 0
    queries_completed: int = 0  # Queries paginated to the end without a failed page
    pages_emitted: int = 0
    records_emitted: int = 0
    failed_queries: List[SearchQuery] = Field(default_factory=list)
    sink_errors: int = 0
