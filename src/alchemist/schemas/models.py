# src/alchemist/schemas/models.py
"""
@brief
Pydantic data models for the Data Alchemist workspace.

@details
Defines the canonical model types:
    - Client, Worker, Task: uploaded entity rows (lenient intake models)
    - BusinessRule: tagged union of the six allocation rule types
    - ValidationFinding: one typed finding produced by the validator
    - PriorityWeights, Workspace: the caller-owned snapshot of the store
    - Config: runtime configuration (from config.yaml)

Entity models accept both upload column names (ClientID, AvailableSlots, ...)
and snake_case names. They never reject malformed values; integer-like cells
are normalized and everything else is kept as received so the validator can
report it.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from alchemist.schemas.coercion import (
    to_int_like,
    to_json_text,
    to_phase_list,
    to_str_list,
)

# Numeric cell as received: integral values are ints, anything else (free text,
# fractions, lists, mappings) is kept untouched for the validator to report.
LooseInt = Any


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and output contracts.

    @details
    Forbids unknown fields and preserves exact naming rules.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


class _IntakeModel(BaseModel):
    """
    @brief
    Base model for uploaded rows.

    @details
    Ignores unknown columns (uploads often carry extra ones) and accepts
    either the column alias or the field name.
    """

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
        "use_enum_values": True,
    }


# ------------------------------------------------------------
# Entities
# ------------------------------------------------------------
class Client(_IntakeModel):
    """
    @brief
    One client row (clients.csv).

    @params
        client_id : str
            Unique client identifier (ClientID).
        priority_level : int
            Expected in [1, 5]; kept as received when not integer-like.
        requested_task_ids : list[str]
            References into the task set.
        attributes_json : str | None
            Free-form attributes, expected to hold valid JSON.
    """

    client_id: str = Field("", alias="ClientID", description="Unique identifier")
    client_name: str = Field("", alias="ClientName", description="Display name")
    priority_level: LooseInt = Field(None, alias="PriorityLevel", description="Priority 1..5")
    requested_task_ids: list[str] = Field(
        default_factory=list, alias="RequestedTaskIDs", description="Requested task IDs"
    )
    group_tag: str = Field("", alias="GroupTag", description="Client group")
    attributes_json: str | None = Field(
        None, alias="AttributesJSON", description="Attributes as a JSON string"
    )

    strip_text = field_validator("client_id", "client_name", "group_tag", mode="before")(_text)

    @field_validator("priority_level", mode="before")
    @classmethod
    def coerce_priority(cls, value: Any) -> Any:
        return to_int_like(value)

    @field_validator("requested_task_ids", mode="before")
    @classmethod
    def coerce_requested(cls, value: Any) -> list[str]:
        return to_str_list(value)

    @field_validator("attributes_json", mode="before")
    @classmethod
    def coerce_attributes(cls, value: Any) -> str | None:
        return to_json_text(value)


class Worker(_IntakeModel):
    """
    @brief
    One worker row (workers.csv).

    @details
    available_slots holds phase numbers; non-integer entries are preserved
    for the malformed-list check.
    """

    worker_id: str = Field("", alias="WorkerID", description="Unique identifier")
    worker_name: str = Field("", alias="WorkerName", description="Display name")
    skills: list[str] = Field(default_factory=list, alias="Skills", description="Skill names")
    available_slots: list[Any] = Field(
        default_factory=list, alias="AvailableSlots", description="Available phase numbers"
    )
    max_load_per_phase: LooseInt = Field(
        None, alias="MaxLoadPerPhase", description="Maximum tasks per phase"
    )
    worker_group: str = Field("", alias="WorkerGroup", description="Worker group")
    qualification_level: LooseInt = Field(
        None, alias="QualificationLevel", description="Qualification level"
    )

    strip_text = field_validator("worker_id", "worker_name", "worker_group", mode="before")(
        _text
    )

    @field_validator("skills", mode="before")
    @classmethod
    def coerce_skills(cls, value: Any) -> list[str]:
        return to_str_list(value)

    @field_validator("available_slots", mode="before")
    @classmethod
    def coerce_slots(cls, value: Any) -> list[Any]:
        return to_phase_list(value)

    @field_validator("max_load_per_phase", "qualification_level", mode="before")
    @classmethod
    def coerce_numbers(cls, value: Any) -> Any:
        return to_int_like(value)


class Task(_IntakeModel):
    """One task row (tasks.csv)."""

    task_id: str = Field("", alias="TaskID", description="Unique identifier")
    task_name: str = Field("", alias="TaskName", description="Display name")
    category: str = Field("", alias="Category", description="Task category")
    duration: LooseInt = Field(None, alias="Duration", description="Duration in phases (>= 1)")
    required_skills: list[str] = Field(
        default_factory=list, alias="RequiredSkills", description="Skills a worker must hold"
    )
    preferred_phases: list[Any] = Field(
        default_factory=list, alias="PreferredPhases", description="Preferred phase numbers"
    )
    max_concurrent: LooseInt = Field(
        0, alias="MaxConcurrent", description="Maximum parallel executions"
    )

    strip_text = field_validator("task_id", "task_name", "category", mode="before")(_text)

    @field_validator("required_skills", mode="before")
    @classmethod
    def coerce_skills(cls, value: Any) -> list[str]:
        return to_str_list(value)

    @field_validator("preferred_phases", mode="before")
    @classmethod
    def coerce_phases(cls, value: Any) -> list[Any]:
        return to_phase_list(value)

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> Any:
        return to_int_like(value)

    @field_validator("max_concurrent", mode="before")
    @classmethod
    def coerce_max_concurrent(cls, value: Any) -> Any:
        value = to_int_like(value)
        return 0 if value is None else value


# ------------------------------------------------------------
# Business rules (tagged union on "type")
# ------------------------------------------------------------
class _RuleParams(BaseModel):
    model_config = {"extra": "allow", "populate_by_name": True}


class CoRunParams(_RuleParams):
    tasks: list[str] = Field(default_factory=list, description="Tasks that must run together")

    @field_validator("tasks", mode="before")
    @classmethod
    def coerce_tasks(cls, value: Any) -> list[str]:
        return to_str_list(value)


class SlotRestrictionParams(_RuleParams):
    group: str = Field("", description="Client or worker group")
    min_common_slots: LooseInt = Field(None, alias="minCommonSlots")

    strip_group = field_validator("group", mode="before")(_text)

    @field_validator("min_common_slots", mode="before")
    @classmethod
    def coerce_slots(cls, value: Any) -> Any:
        return to_int_like(value)


class LoadLimitParams(_RuleParams):
    worker_group: str = Field("", alias="workerGroup")
    max_slots_per_phase: LooseInt = Field(None, alias="maxSlotsPerPhase")

    strip_group = field_validator("worker_group", mode="before")(_text)

    @field_validator("max_slots_per_phase", mode="before")
    @classmethod
    def coerce_max_slots(cls, value: Any) -> Any:
        return to_int_like(value)


class PhaseWindowParams(_RuleParams):
    task_id: str = Field("", alias="taskId")
    allowed_phases: list[Any] = Field(default_factory=list, alias="allowedPhases")

    strip_task = field_validator("task_id", mode="before")(_text)

    @field_validator("allowed_phases", mode="before")
    @classmethod
    def coerce_phases(cls, value: Any) -> list[Any]:
        return to_phase_list(value)


class PatternMatchParams(_RuleParams):
    pattern: str = ""
    action: str = ""


class PrecedenceParams(_RuleParams):
    priority: LooseInt = None
    condition: str = ""

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, value: Any) -> Any:
        return to_int_like(value)


class _RuleBase(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    id: str = Field("", description="Rule identifier")
    name: str = Field("", description="Display name")
    description: str = Field("", description="Free-text description")
    active: bool = Field(True, description="Inactive rules are ignored by the validator")

    strip_text = field_validator("id", "name", "description", mode="before")(_text)


class CoRunRule(_RuleBase):
    type: Literal["coRun"] = "coRun"
    parameters: CoRunParams = Field(default_factory=CoRunParams)


class SlotRestrictionRule(_RuleBase):
    type: Literal["slotRestriction"] = "slotRestriction"
    parameters: SlotRestrictionParams = Field(default_factory=SlotRestrictionParams)


class LoadLimitRule(_RuleBase):
    type: Literal["loadLimit"] = "loadLimit"
    parameters: LoadLimitParams = Field(default_factory=LoadLimitParams)


class PhaseWindowRule(_RuleBase):
    type: Literal["phaseWindow"] = "phaseWindow"
    parameters: PhaseWindowParams = Field(default_factory=PhaseWindowParams)


class PatternMatchRule(_RuleBase):
    type: Literal["patternMatch"] = "patternMatch"
    parameters: PatternMatchParams = Field(default_factory=PatternMatchParams)


class PrecedenceRule(_RuleBase):
    type: Literal["precedence"] = "precedence"
    parameters: PrecedenceParams = Field(default_factory=PrecedenceParams)


BusinessRule = Annotated[
    Union[
        CoRunRule,
        SlotRestrictionRule,
        LoadLimitRule,
        PhaseWindowRule,
        PatternMatchRule,
        PrecedenceRule,
    ],
    Field(discriminator="type"),
]

RULE_TYPES = (
    "coRun",
    "slotRestriction",
    "loadLimit",
    "phaseWindow",
    "patternMatch",
    "precedence",
)
_RULE_TYPE_KEYS = {tag.lower(): tag for tag in RULE_TYPES}
_RULE_ADAPTER: TypeAdapter[Any] = TypeAdapter(BusinessRule)


def normalize_rule_type(tag: Any) -> Any:
    """Map "co-run", "co_run", "CoRun" and friends onto the canonical tag."""
    if not isinstance(tag, str):
        return tag
    key = tag.strip().replace("-", "").replace("_", "").replace(" ", "").lower()
    return _RULE_TYPE_KEYS.get(key, tag)


def _rule_payload(raw: Any) -> Any:
    if isinstance(raw, _RuleBase) or not isinstance(raw, dict):
        return raw
    data = dict(raw)
    data["type"] = normalize_rule_type(data.get("type"))
    if data.get("parameters") is None:
        data.pop("parameters", None)
    return data


def parse_rule(raw: Any) -> Any:
    """
    @brief
    Validate one raw rule mapping into the BusinessRule union.

    @raises
        pydantic.ValidationError
            Raised for unknown rule types or parameter bags of the wrong shape.
    """
    if isinstance(raw, _RuleBase):
        return raw
    return _RULE_ADAPTER.validate_python(_rule_payload(raw))


# ------------------------------------------------------------
# Findings
# ------------------------------------------------------------
class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationFinding(_StrictBaseModel):
    """
    @brief
    One validation finding.

    @details
    Serialized for the correction-suggestion service as
    {id, type, severity, message, entity, field?, suggestion?}.
    """

    model_config = {"frozen": True}

    id: str = Field(..., description="Stable finding identifier")
    type: str = Field(..., description="Category tag, e.g. duplicate-id")
    severity: Severity = Field(..., description="error | warning | info")
    message: str = Field(..., description="Human-readable message")
    entity: str = Field(..., description="Identifier of the concerned entity")
    field: str | None = Field(None, description="Concerned column, if any")
    suggestion: str | None = Field(None, description="Remediation hint")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ------------------------------------------------------------
# Workspace snapshot
# ------------------------------------------------------------
class PriorityWeights(_StrictBaseModel):
    """Relative weights handed to the allocation engine (percent points)."""

    priority_level: float = Field(20, ge=0, alias="priorityLevel")
    task_fulfillment: float = Field(25, ge=0, alias="taskFulfillment")
    fairness: float = Field(20, ge=0, alias="fairness")
    workload_balance: float = Field(15, ge=0, alias="workloadBalance")
    skill_match: float = Field(15, ge=0, alias="skillMatch")
    client_satisfaction: float = Field(5, ge=0, alias="clientSatisfaction")


class Workspace(_IntakeModel):
    """
    @brief
    Snapshot of the entity store handed to the validator.

    @details
    Owned by the caller; the validator only reads it.
    """

    clients: list[Client] = Field(default_factory=list)
    workers: list[Worker] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    rules: list[BusinessRule] = Field(default_factory=list)
    priority_weights: PriorityWeights = Field(
        default_factory=PriorityWeights, alias="priorityWeights"
    )

    @field_validator("rules", mode="before")
    @classmethod
    def coerce_rules(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [_rule_payload(item) for item in value]
        return value

    def active_rules(self) -> list[Any]:
        return [rule for rule in self.rules if rule.active]

    def entity_counts(self) -> dict[str, int]:
        return {
            "total_clients": len(self.clients),
            "total_workers": len(self.workers),
            "total_tasks": len(self.tasks),
            "active_rules": len(self.active_rules()),
        }


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(_StrictBaseModel):
    """
    @brief
    Controls behavior of the validation engine.

    @details
    Range bounds for the out-of-range checks, advisory findings and the
    report policy.
    """

    priority_min: int = Field(1, description="Lowest accepted PriorityLevel")
    priority_max: int = Field(5, description="Highest accepted PriorityLevel")
    min_duration: int = Field(1, ge=0, description="Smallest accepted task Duration")
    include_insights: bool = Field(False, description="Append advisory info findings")
    write_report: bool = True
    fail_on_warnings: bool = False


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.
    """

    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)
    output_dir: str | None = "data/output"
    workspace_path: str | None = None


__all__ = [
    "Client",
    "Worker",
    "Task",
    "BusinessRule",
    "CoRunRule",
    "SlotRestrictionRule",
    "LoadLimitRule",
    "PhaseWindowRule",
    "PatternMatchRule",
    "PrecedenceRule",
    "RULE_TYPES",
    "normalize_rule_type",
    "parse_rule",
    "Severity",
    "ValidationFinding",
    "PriorityWeights",
    "Workspace",
    "ValidationConfig",
    "Config",
]
