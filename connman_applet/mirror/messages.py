#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Inbound messages consumed by the mirror dispatch functions. D-Bus signals are converted into
these before they reach a mirror so that the reconciliation logic can be driven without a bus.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union


@dataclass
class TechnologyAdded:
    path: str
    properties: dict = field(default_factory=dict)


@dataclass
class TechnologyRemoved:
    path: str


@dataclass
class ServiceChanged:
    """Batch of (path, properties) pairs, properties may be partial"""

    services: List[Tuple[str, dict]] = field(default_factory=list)


@dataclass
class ServiceRemoved:
    paths: List[str] = field(default_factory=list)


@dataclass
class PropertyChanged:
    """Single property change, 'path' is the emitting object (None for the manager)"""

    name: str
    value: Any
    path: Optional[str] = None


InboundMessage = Union[
    TechnologyAdded, TechnologyRemoved, ServiceChanged, ServiceRemoved, PropertyChanged
]
