"""
Typed records for the roster extraction pipeline.

Draft* models are the boundary types for the model's free-form JSON: they accept
the Spanish keys used in the extraction instructions (and snake_case equivalents)
and coerce loose values. ShiftRecord and AnalysisResult are the normalized
pipeline output consumed by the review UI and the spreadsheet renderer.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

UNKNOWN_CEDULA = "???"

TRUE_STRINGS = {"true", "1", "si", "sí", "yes", "y", "x"}


def coerce_bool(value: Any) -> bool:
    """Strict boolean from model output; anything not clearly truthy is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return False


def coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return None
    text = str(value).strip()
    return text or None


class ParsedExtraction(BaseModel):
    """Raw JSON sections recovered from the model response."""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    agents: List[Dict[str, Any]] = Field(default_factory=list)
    records: List[Dict[str, Any]] = Field(default_factory=list)
    recovered: bool = False


class DraftMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    supervisor: Optional[str] = Field(None, validation_alias=AliasChoices("supervisor", "lider"))
    campaign: Optional[str] = Field(None, validation_alias=AliasChoices("campana", "campaign"))
    campaigns: List[str] = Field(default_factory=list, validation_alias=AliasChoices("campanas", "campaigns"))
    week_label: Optional[str] = Field(None, validation_alias=AliasChoices("semana", "week_label", "weekLabel"))
    week_start: Optional[str] = Field(None, validation_alias=AliasChoices("fechaInicio", "week_start", "weekStart"))
    week_end: Optional[str] = Field(None, validation_alias=AliasChoices("fechaFin", "week_end", "weekEnd"))
    contract: Optional[str] = Field(None, validation_alias=AliasChoices("contrato", "contract"))

    @field_validator("supervisor", "campaign", "week_label", "week_start", "week_end", "contract", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)

    @field_validator("campaigns", mode="before")
    @classmethod
    def _campaign_list(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [text for text in (coerce_text(item) for item in value) if text]


class DraftAgent(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Optional[str] = Field(None, validation_alias=AliasChoices("nombre", "name"))
    campaign: Optional[str] = Field(None, validation_alias=AliasChoices("campana", "campaign"))
    assigned_task: Optional[str] = Field(
        None, validation_alias=AliasChoices("tareaAsignada", "assigned_task", "task")
    )

    @field_validator("name", "campaign", "assigned_task", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)


class DraftShift(BaseModel):
    """One shift row exactly as the model reported it, before business rules."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    person_cedula: Optional[str] = Field(None, validation_alias=AliasChoices("cedula", "person_cedula"))
    person_name: Optional[str] = Field(None, validation_alias=AliasChoices("nombre", "person_name", "name"))
    date: Optional[str] = Field(None, validation_alias=AliasChoices("fecha", "date"))
    day_of_week: Optional[str] = Field(None, validation_alias=AliasChoices("diaSemana", "day_of_week"))
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("horaInicio", "start_time"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("horaFin", "end_time"))
    is_rest_day: bool = Field(False, validation_alias=AliasChoices("esDescanso", "is_rest_day"))
    is_leave: bool = Field(False, validation_alias=AliasChoices("esIncapacidad", "is_leave"))
    leave_reason: Optional[str] = Field(None, validation_alias=AliasChoices("motivoAusencia", "leave_reason"))
    is_split_shift: bool = Field(False, validation_alias=AliasChoices("esSplit", "is_split_shift"))
    split_start_time_2: Optional[str] = Field(
        None, validation_alias=AliasChoices("splitHoraInicio2", "split_start_time_2")
    )
    split_end_time_2: Optional[str] = Field(
        None, validation_alias=AliasChoices("splitHoraFin2", "split_end_time_2")
    )
    lunch_break: Optional[str] = Field(None, validation_alias=AliasChoices("almuerzo", "lunch_break"))
    campaign_code: Optional[str] = Field(None, validation_alias=AliasChoices("campana", "campaign_code"))
    contract_code: Optional[str] = Field(None, validation_alias=AliasChoices("contrato", "contract_code"))
    duty_summary: Optional[str] = Field(None, validation_alias=AliasChoices("jornada", "duty_summary"))

    @field_validator("is_rest_day", "is_leave", "is_split_shift", mode="before")
    @classmethod
    def _bool(cls, value: Any) -> bool:
        return coerce_bool(value)

    @field_validator(
        "person_cedula", "person_name", "date", "day_of_week", "start_time", "end_time",
        "leave_reason", "split_start_time_2", "split_end_time_2", "lunch_break",
        "campaign_code", "contract_code", "duty_summary",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)


class ShiftRecord(BaseModel):
    """One person, one calendar day, after normalization."""
    person_cedula: Optional[str] = UNKNOWN_CEDULA
    person_name: str
    date: date
    day_of_week: str
    is_rest_day: bool = False
    is_leave: bool = False
    leave_reason: Optional[str] = None
    is_split_shift: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    split_start_time_2: Optional[str] = None
    split_end_time_2: Optional[str] = None
    lunch_break: Optional[str] = None
    campaign_code: str = ""
    contract_code: Optional[str] = None
    duty_summary: str = ""
    original_name_as_extracted: Optional[str] = None
    matched_from_reference: bool = False
    inferred: bool = False

    @property
    def identity_key(self) -> str:
        if self.person_cedula and self.person_cedula != UNKNOWN_CEDULA:
            return self.person_cedula
        return self.person_name


class AnalysisMetadata(BaseModel):
    supervisor: Optional[str] = None
    campaign: Optional[str] = None
    campaigns: List[str] = Field(default_factory=list)
    contract: Optional[str] = None
    week_label: Optional[str] = None
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    week_dates: List[date] = Field(default_factory=list)


class AgentSummary(BaseModel):
    name: str
    campaign: Optional[str] = None
    assigned_task: Optional[str] = None


class MatchStats(BaseModel):
    total: int = 0
    matched: int = 0
    unmatched: int = 0
    roster_available: bool = True


class AnalysisResult(BaseModel):
    metadata: AnalysisMetadata
    agents: List[AgentSummary] = Field(default_factory=list)
    records: List[ShiftRecord] = Field(default_factory=list)
    match_stats: MatchStats = Field(default_factory=MatchStats)
    diagnostics: Dict[str, Any] = Field(default_factory=dict)
    image_paths: List[str] = Field(default_factory=list)
