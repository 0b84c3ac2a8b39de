"""Фабрики типових контрактів та завантаження контрактів із YAML."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from viztel_core.errors import VizTelError
from viztel_core.viztel_types import (
    ContractType,
    RankContract,
    RelationConstraint,
    RelationType,
    Tolerance,
)


def modal_on_top(modal_id: str, *background_ids: str) -> RankContract:
    """Модалка, коли відкрита, не нижча за жоден фон (2 кадри на анімацію)."""

    return RankContract(
        id=f"modal_on_top:{modal_id}",
        type=ContractType.NEVER_BELOW,
        expected_order=(modal_id, *background_ids),
        tolerance=Tolerance(frames=2, margin_or_n=0),
        requires_entity_present=modal_id,
        name=f"Modal {modal_id} on top",
    )


def nav_order(*item_ids: str) -> RankContract:
    """Пункти навігації зберігають порядок; сусідні можуть мінятись на 1."""

    return RankContract(
        id="nav_order:" + ",".join(item_ids),
        type=ContractType.PARTIAL_ORDER,
        expected_order=tuple(item_ids),
        tolerance=Tolerance(frames=5, margin_or_n=1),
        name="Navigation order",
    )


def focus_visible(focus_id: str, *other_ids: str) -> RankContract:
    """Елемент у фокусі має бути серед двох найпомітніших."""

    return RankContract(
        id=f"focus_visible:{focus_id}",
        type=ContractType.TOP_N,
        expected_order=(focus_id, *other_ids),
        tolerance=Tolerance(frames=3, margin_or_n=2),
        name=f"Focus {focus_id} visible",
    )


# ── YAML ──────────────────────────────────────────────────────────────────


class _ToleranceModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    frames: int = Field(default=0, ge=0)
    margin_or_n: int = Field(default=0, ge=0, alias="marginOrN")


class _ContractModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    type: ContractType
    expected_order: list[str] = Field(alias="expectedOrder", min_length=1)
    tolerance: _ToleranceModel = Field(default_factory=_ToleranceModel)
    requires_entity_present: str | None = Field(
        default=None, alias="requiresEntityPresent"
    )
    active_when: dict[str, str] | None = Field(default=None, alias="activeWhen")
    name: str = ""

    def to_contract(self) -> RankContract:
        return RankContract(
            id=self.id,
            type=self.type,
            expected_order=tuple(self.expected_order),
            tolerance=Tolerance(
                frames=self.tolerance.frames,
                margin_or_n=self.tolerance.margin_or_n,
            ),
            requires_entity_present=self.requires_entity_present
            or (self.active_when or {}).get("requiresEntityPresent"),
            name=self.name,
        )


class _RelationModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    subject: str
    relation: RelationType
    target: str
    tolerance_frames: int = Field(default=0, ge=0, alias="toleranceFrames")

    def to_constraint(self) -> RelationConstraint:
        return RelationConstraint(
            id=self.id,
            subject=self.subject,
            relation=self.relation,
            target=self.target,
            tolerance_frames=self.tolerance_frames,
        )


class _ContractsFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    contracts: list[_ContractModel] = Field(default_factory=list)
    relations: list[_RelationModel] = Field(default_factory=list)


def parse_contracts(
    raw: Any,
) -> tuple[list[RankContract], list[RelationConstraint]]:
    """Валідує вже розпарсений YAML/JSON документ контрактів.

    Raises:
        VizTelError: документ не відповідає схемі.
    """

    if raw is None:
        return [], []
    try:
        parsed = _ContractsFile.model_validate(raw)
    except ValidationError as exc:
        raise VizTelError(f"invalid contracts document: {exc}") from exc
    return (
        [item.to_contract() for item in parsed.contracts],
        [item.to_constraint() for item in parsed.relations],
    )


def load_contracts_yaml(
    path: str | Path,
) -> tuple[list[RankContract], list[RelationConstraint]]:
    """Читає ``contracts.yaml``: секції ``contracts`` та ``relations``."""

    try:
        text = Path(path).read_text(encoding="utf-8")
        raw = yaml.safe_load(text)
    except (OSError, yaml.YAMLError) as exc:
        raise VizTelError(f"cannot read contracts from {path}: {exc}") from exc
    return parse_contracts(raw)
