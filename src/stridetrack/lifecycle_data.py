# src/stridetrack/lifecycle_data.py
"""Built-in requirement lifecycle definition.

Logic lives in lifecycle.py; this file is pure data.

The pipeline runs Sensing -> (Harmonizing | Designathon) -> Convergence.
Gate checklists and phase-specific fields are keyed by ``"FROM->TO"`` edge
strings. Every edge in ``transitions`` has a gate checklist; edges absent
from ``phase_fields`` capture no structured data beyond the notes.
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Attribute vocabularies
# ---------------------------------------------------------------------------

SOURCE_TYPES: tuple[str, ...] = ("CDC", "SEN", "BLIND", "ELDERLY", "BUDS", "OTHER")
PRIORITIES: tuple[str, ...] = ("P1", "P2", "P3")
TECH_LEVELS: tuple[str, ...] = ("LOW", "MEDIUM", "HIGH")
THERAPY_DOMAINS: tuple[str, ...] = ("OT", "PT", "Speech", "ADL", "Sensory", "Cognitive")
DISABILITY_TYPES: tuple[str, ...] = ("Physical", "Visual", "Hearing", "Cognitive", "Multiple")
GAP_FLAGS: tuple[str, ...] = ("RED", "BLUE")
PATHS: tuple[str, ...] = ("INTERNAL", "DESIGNATHON")

# ---------------------------------------------------------------------------
# Lifecycle graph
# ---------------------------------------------------------------------------

_VALIDATION_METHODS = ["Field Visit", "Expert Review", "Literature", "Stakeholder Interview"]
_MANUFACTURING_METHODS = ["3D Printing", "CNC", "Injection Molding", "Hand Assembly", "Other"]

LIFECYCLE: dict[str, Any] = {
    "initial_state": "S1",
    "terminal_states": ["H-DOE-5"],
    "path_state": "S4",
    "path_targets": {"INTERNAL": "H-INT-1", "DESIGNATHON": "H-DES-1"},
    "revision_edges": [["H-DOE-4", "H-INT-1"], ["H-DOE-4", "H-DES-1"]],
    "states": [
        {"id": "S1", "label": "Captured", "phase": "SENSING"},
        {"id": "S2", "label": "Under Review", "phase": "SENSING"},
        {"id": "S3", "label": "Validated", "phase": "SENSING"},
        {"id": "S4", "label": "Prioritized", "phase": "SENSING"},
        {"id": "H-INT-1", "label": "Design Started", "phase": "HARMONIZING"},
        {"id": "H-INT-2", "label": "Prototype Ready", "phase": "HARMONIZING"},
        {"id": "H-DES-1", "label": "Challenge Published", "phase": "DESIGNATHON"},
        {"id": "H-DES-2", "label": "Teams Registered", "phase": "DESIGNATHON"},
        {"id": "H-DES-3", "label": "Submissions In", "phase": "DESIGNATHON"},
        {"id": "H-DES-4", "label": "Judging Complete", "phase": "DESIGNATHON"},
        {"id": "H-DES-5", "label": "Winner Selected", "phase": "DESIGNATHON"},
        {"id": "H-DES-6", "label": "Prototype Handed Over", "phase": "DESIGNATHON"},
        {"id": "H-DOE-1", "label": "DoE In Progress", "phase": "CONVERGENCE"},
        {"id": "H-DOE-2", "label": "DoE Complete", "phase": "CONVERGENCE"},
        {"id": "H-DOE-3", "label": "Committee Review", "phase": "CONVERGENCE"},
        {"id": "H-DOE-4", "label": "Committee Decision", "phase": "CONVERGENCE"},
        {"id": "H-DOE-5", "label": "Production-Ready", "phase": "CONVERGENCE"},
    ],
    "transitions": {
        "S1": ["S2"],
        "S2": ["S3"],
        "S3": ["S4"],
        "S4": ["H-INT-1", "H-DES-1"],
        "H-INT-1": ["H-INT-2"],
        "H-INT-2": ["H-DOE-1"],
        "H-DES-1": ["H-DES-2"],
        "H-DES-2": ["H-DES-3"],
        "H-DES-3": ["H-DES-4"],
        "H-DES-4": ["H-DES-5"],
        "H-DES-5": ["H-DES-6"],
        "H-DES-6": ["H-DOE-1"],
        "H-DOE-1": ["H-DOE-2"],
        "H-DOE-2": ["H-DOE-3"],
        "H-DOE-3": ["H-DOE-4"],
        "H-DOE-4": ["H-DOE-5", "H-INT-1", "H-DES-1"],
        "H-DOE-5": [],
    },
    "gates": {
        "S1->S2": [
            {"id": "title_complete", "label": "Device title is clearly defined", "required": True},
            {"id": "source_identified", "label": "Source type identified", "required": True},
            {"id": "description_present", "label": "Description provided", "required": True},
        ],
        "S2->S3": [
            {"id": "gaps_reviewed", "label": "Gap flags reviewed and updated", "required": True},
            {"id": "disability_classified", "label": "Disability types classified", "required": True},
            {"id": "therapy_mapped", "label": "Therapy domains mapped", "required": True},
        ],
        "S3->S4": [
            {"id": "priority_set", "label": "Priority level assigned (P1/P2/P3)", "required": True},
            {"id": "tech_assessed", "label": "Tech level assessed", "required": True},
            {"id": "pricing_estimated", "label": "Market/target pricing estimated", "required": False},
        ],
        "S4->H-INT-1": [
            {"id": "path_internal", "label": "Path assigned: STRIDE Internal", "required": True},
            {"id": "designer_available", "label": "Internal designer availability confirmed", "required": True},
        ],
        "S4->H-DES-1": [
            {"id": "path_designathon", "label": "Path assigned: Designathon", "required": True},
            {"id": "challenge_brief", "label": "Challenge brief prepared", "required": True},
        ],
        "H-INT-1->H-INT-2": [
            {"id": "design_complete", "label": "Design files completed", "required": True},
            {"id": "material_selected", "label": "Materials selected", "required": True},
        ],
        "H-INT-2->H-DOE-1": [
            {"id": "prototype_tested", "label": "Prototype functionally tested", "required": True},
            {"id": "ready_for_doe", "label": "Ready for Design of Experiments", "required": True},
        ],
        "H-DES-1->H-DES-2": [
            {"id": "challenge_published", "label": "Challenge published to teams", "required": True},
        ],
        "H-DES-2->H-DES-3": [
            {"id": "teams_registered", "label": "At least one team registered", "required": True},
        ],
        "H-DES-3->H-DES-4": [
            {"id": "submissions_received", "label": "Submissions received", "required": True},
        ],
        "H-DES-4->H-DES-5": [
            {"id": "judging_complete", "label": "All judges scored submissions", "required": True},
        ],
        "H-DES-5->H-DES-6": [
            {"id": "winner_notified", "label": "Winner notified", "required": True},
            {"id": "handover_docs", "label": "Handover documentation prepared", "required": True},
        ],
        "H-DES-6->H-DOE-1": [
            {"id": "prototype_received", "label": "Prototype received from winner", "required": True},
        ],
        "H-DOE-1->H-DOE-2": [
            {"id": "doe_protocol", "label": "DoE protocol followed", "required": True},
            {"id": "data_collected", "label": "Pre/post test data collected", "required": True},
        ],
        "H-DOE-2->H-DOE-3": [
            {"id": "doe_report", "label": "DoE report compiled", "required": True},
            {"id": "results_analyzed", "label": "Results statistically analyzed", "required": True},
        ],
        "H-DOE-3->H-DOE-4": [
            {"id": "committee_reviewed", "label": "All committee members reviewed", "required": True},
        ],
        "H-DOE-4->H-DOE-5": [
            {"id": "committee_approved", "label": "Committee decision: APPROVED", "required": True},
        ],
        "H-DOE-4->H-INT-1": [
            {"id": "revision_reason", "label": "Revision reason documented (Internal path)", "required": True},
        ],
        "H-DOE-4->H-DES-1": [
            {"id": "revision_reason_des", "label": "Revision reason documented (Designathon path)", "required": True},
        ],
    },
    "phase_fields": {
        "S1->S2": [
            {"id": "reviewer_name", "label": "Reviewer Name", "type": "text", "required": True},
            {"id": "initial_assessment", "label": "Initial Assessment Notes", "type": "long-text", "required": False},
        ],
        "S2->S3": [
            {"id": "gap_corrections", "label": "Gap Corrections Log", "type": "long-text", "required": True},
            {
                "id": "validation_method",
                "label": "Validation Method",
                "type": "select",
                "options": _VALIDATION_METHODS,
                "required": True,
            },
        ],
        "S3->S4": [
            {
                "id": "prioritization_rationale",
                "label": "Prioritization Rationale",
                "type": "long-text",
                "required": True,
            },
        ],
        "S4->H-INT-1": [
            {"id": "assigned_designer", "label": "Assigned Designer", "type": "text", "required": True},
            {"id": "estimated_timeline", "label": "Estimated Timeline (weeks)", "type": "text", "required": False},
        ],
        "S4->H-DES-1": [
            {"id": "challenge_title", "label": "Challenge Title", "type": "text", "required": True},
            {"id": "target_audience", "label": "Target Participant Audience", "type": "text", "required": False},
        ],
        "H-INT-1->H-INT-2": [
            {"id": "material_used", "label": "Primary Material Used", "type": "text", "required": True},
            {
                "id": "manufacturing_method",
                "label": "Manufacturing Method",
                "type": "select",
                "options": _MANUFACTURING_METHODS,
                "required": True,
            },
        ],
        "H-INT-2->H-DOE-1": [
            {"id": "prototype_id", "label": "Prototype ID / Version", "type": "text", "required": True},
        ],
        "H-DOE-1->H-DOE-2": [
            {"id": "sample_size", "label": "Sample Size", "type": "text", "required": True},
            {"id": "testing_duration", "label": "Testing Duration (days)", "type": "text", "required": True},
        ],
        "H-DOE-2->H-DOE-3": [
            {"id": "key_findings", "label": "Key Findings Summary", "type": "long-text", "required": True},
        ],
        "H-DOE-4->H-DOE-5": [
            {"id": "production_notes", "label": "Production Readiness Notes", "type": "long-text", "required": False},
        ],
        "H-DOE-4->H-INT-1": [
            {"id": "revision_instructions", "label": "Revision Instructions", "type": "long-text", "required": True},
        ],
        "H-DOE-4->H-DES-1": [
            {"id": "revision_instructions", "label": "Revision Instructions", "type": "long-text", "required": True},
        ],
    },
}

# Days a requirement may sit in a phase before it is flagged, keyed by state prefix.
# Prefixes are matched longest-first so "H-DOE" wins over "S"-style catch-alls.
AGING_THRESHOLDS: dict[str, int] = {
    "S": 14,
    "H-INT": 60,
    "H-DES": 90,
    "H-DOE": 45,
    "default": 30,
}
