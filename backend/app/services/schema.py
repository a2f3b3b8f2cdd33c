# app/services/schema.py
"""
Survey schema registry.

A schema is a plain data value describing one questionnaire: the screening
(gate) question, which answers are required, which are multi-select, which
are Likert-scale ratings and which are tallied as demographics. Validator,
aggregator and exporter all take a schema argument, so a new questionnaire
version is new configuration, not new code.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SurveySchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    gate_field: str
    eligible_value: str
    ineligible_value: str
    filtered_flag: str = "filtered"

    required_fields: List[str] = Field(default_factory=list)
    multi_value_fields: List[str] = Field(default_factory=list)
    scale_fields: List[str] = Field(default_factory=list)
    scale_min: float = 1
    scale_max: float = 5

    # report label -> field id, in display order
    demographic_fields: Dict[str, str] = Field(default_factory=dict)

    # explicit CSV column order; derived from the other lists when empty
    export_fields: List[str] = Field(default_factory=list)
    unanswered_label: str = "unanswered"

    @model_validator(mode="after")
    def _check_consistency(self) -> "SurveySchema":
        if self.scale_min > self.scale_max:
            raise ValueError("scale_min must not exceed scale_max")
        overlapping = {self.gate_field} & (
            set(self.required_fields) | set(self.scale_fields) | set(self.multi_value_fields)
        )
        if overlapping:
            raise ValueError(f"gate field {self.gate_field!r} cannot also be required, scale or multi-value")
        return self

    @property
    def columns(self) -> List[str]:
        """Answer columns in export order."""
        if self.export_fields:
            return list(self.export_fields)
        ordered = [self.gate_field, *self.required_fields, *self.multi_value_fields,
                   *self.scale_fields, *self.demographic_fields.values()]
        return list(dict.fromkeys(ordered))

    def describe_range(self) -> str:
        return f"{_fmt_number(self.scale_min)}-{_fmt_number(self.scale_max)}"


def _fmt_number(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else str(n)


# ---------- Built-in schemas ----------

def _qids(first: int, last: int) -> List[str]:
    return [f"Q{i}" for i in range(first, last + 1)]


# Museum visitor satisfaction questionnaire: Q1 screening, Q2-Q15 profile and
# visit traits, Q16-Q45 service quality Likert items, Q46-Q47 behavioural
# intent, Q48-Q49 open questions.
VISITOR_SATISFACTION = SurveySchema(
    name="visitor-satisfaction",
    gate_field="Q1",
    eligible_value="是",
    ineligible_value="否",
    required_fields=["Q2", "Q3", "Q4", "Q5", "Q6", "Q8", "Q9", "Q11", "Q12", "Q13", "Q14", "Q15"],
    multi_value_fields=["Q10"],
    scale_fields=_qids(16, 47),
    demographic_fields={
        "gender": "Q2",
        "residence": "Q3",
        "age": "Q4",
        "education": "Q5",
        "occupation": "Q6",
        "income": "Q7",
        "visitCount": "Q8",
        "purpose": "Q9",
    },
    export_fields=_qids(1, 49),
    unanswered_label="未填",
)


# ---------- Registry ----------

_REGISTRY: Dict[str, SurveySchema] = {}


def register_schema(schema: SurveySchema) -> SurveySchema:
    _REGISTRY[schema.name] = schema
    return schema


def get_schema(name: str) -> SurveySchema:
    """Look up a registered schema; raises KeyError for unknown names."""
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown survey schema: {name!r}") from None


def list_schemas() -> List[str]:
    return sorted(_REGISTRY)


def load_schema_file(path: str | Path) -> SurveySchema:
    """Read a schema from a JSON document (field names as in SurveySchema)."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return SurveySchema.model_validate(data)


def resolve_schema(ref: Optional[str]) -> SurveySchema:
    """Resolve a schema reference: an existing file path, else a registry name."""
    if not ref:
        return VISITOR_SATISFACTION
    if Path(ref).is_file():
        return load_schema_file(ref)
    return get_schema(ref)


register_schema(VISITOR_SATISFACTION)
