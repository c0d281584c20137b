"""
Label eligibility rules and the canonical default label set.

Labels are partitioned by industry tag. A project only offers labels
tagged with its own industry or ``general``; untagged legacy labels are
treated as general.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from workhub.models.entities import Industry, Label
from workhub.utils.helpers import new_id

# Working sets smaller than this are replaced by the defaults wholesale
MIN_LABELS_BEFORE_MERGE = 5

_G = Industry.GENERAL.value
_SW = Industry.SOFTWARE.value
_MFG = Industry.MANUFACTURING.value
_SVC = Industry.SERVICE.value

# (id, name, color, description, industry, category)
_DEFAULTS = [
    ("label-urgent", "Urgent", "#f5222d", "Needs immediate attention", _G, "priority"),
    ("label-documentation", "Documentation", "#8c8c8c", "Docs and manuals", _G, "general"),
    ("label-customer-request", "Customer request", "#eb2f96", "Raised by a customer", _G, "general"),
    ("label-frontend", "Frontend", "#1890ff", "UI and client code", _SW, "component"),
    ("label-backend", "Backend", "#722ed1", "Server and API code", _SW, "component"),
    ("label-performance", "Performance", "#fa8c16", "Speed and resource usage", _SW, "quality"),
    ("label-security", "Security", "#cf1322", "Vulnerabilities and hardening", _SW, "quality"),
    ("label-production-line", "Production line", "#722ed1", "Production line issues", _MFG, "process"),
    ("label-quality-control", "Quality control", "#f5222d", "Inspection and QC", _MFG, "quality"),
    ("label-equipment", "Equipment", "#fa8c16", "Machines and tooling", _MFG, "asset"),
    ("label-materials", "Materials", "#13c2c2", "Raw materials and parts", _MFG, "supply"),
    ("label-safety", "Safety", "#ff4d4f", "Safety incidents", _MFG, "safety"),
    ("label-logistics", "Logistics", "#faad14", "Shipping and delivery", _MFG, "supply"),
    ("label-sla", "SLA", "#1890ff", "Service level commitments", _SVC, "contract"),
    ("label-customer-complaint", "Customer complaint", "#eb2f96", "Complaints and escalations", _SVC, "customer"),
    ("label-billing", "Billing", "#52c41a", "Invoices and payments", _SVC, "finance"),
]


def default_labels() -> list[Label]:
    """Fresh copies of the canonical label set (stable ids)."""
    return [
        Label(id=lid, name=name, color=color, description=desc, industry=industry, category=category)
        for lid, name, color, desc, industry, category in _DEFAULTS
    ]


def is_eligible(label: Label, industry: str | None) -> bool:
    tag = label.industry or _G
    return tag == _G or tag == (industry or _G)


def eligible_labels(labels: Iterable[Label], industry: str | None) -> list[Label]:
    """Labels offered to a project of *industry* (its own tag plus general)."""
    return [label for label in labels if is_eligible(label, industry)]


def prune_ineligible_labels(selected_ids: Iterable[str], labels: Iterable[Label], industry: str | None) -> list[str]:
    """Drop selected label ids that are not eligible for *industry*.

    Run on an issue draft whenever its project (and so its industry)
    changes. Ids that match no label at all are dropped too.
    """
    allowed = {label.id for label in eligible_labels(labels, industry)}
    return [lid for lid in selected_ids if lid in allowed]


def reconcile_labels(current: list[Label], defaults: list[Label]) -> tuple[list[Label], bool]:
    """Reconcile a working label set against the defaults.

    Returns ``(labels, replaced)``. When the working set is small or has
    no industry tags at all it is replaced by *defaults*; otherwise the
    defaults missing by name are appended in default order.
    """
    if len(current) < MIN_LABELS_BEFORE_MERGE or not any(label.industry for label in current):
        return list(defaults), True
    names = {label.name for label in current}
    ids = {label.id for label in current}
    merged = list(current)
    for label in defaults:
        if label.name in names:
            continue
        if label.id in ids:
            # a renamed default still holds this id
            label = replace(label, id=new_id(Label.ID_PREFIX))
        merged.append(label)
        names.add(label.name)
        ids.add(label.id)
    return merged, False
