"""Перевірка топології: rank-контракти, парні відношення, фабрики."""

from viztel_topology.checker import (
    TopologyChecker,
    extract_rank_map,
    is_contract_active,
)
from viztel_topology.factories import (
    focus_visible,
    load_contracts_yaml,
    modal_on_top,
    nav_order,
    parse_contracts,
)

__all__ = [
    "TopologyChecker",
    "extract_rank_map",
    "is_contract_active",
    "focus_visible",
    "load_contracts_yaml",
    "modal_on_top",
    "nav_order",
    "parse_contracts",
]
