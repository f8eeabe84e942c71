"""Database schema definitions for the stridetrack requirement tracker.

Contains the canonical SQL schema and the current schema version constant.
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS requirements (
    id                 TEXT PRIMARY KEY,
    title              TEXT NOT NULL,
    description        TEXT DEFAULT '',
    source_type        TEXT NOT NULL DEFAULT 'OTHER',
    priority           TEXT NOT NULL DEFAULT 'P2',
    tech_level         TEXT NOT NULL DEFAULT 'LOW',
    therapy_domains    TEXT DEFAULT '[]',
    disability_types   TEXT DEFAULT '[]',
    gap_flags          TEXT DEFAULT '[]',
    market_price       REAL,
    target_price       REAL,
    current_state      TEXT NOT NULL DEFAULT 'S1',
    path_assignment    TEXT,
    path_justification TEXT DEFAULT '',
    revision_number    INTEGER NOT NULL DEFAULT 0,
    created_by         TEXT DEFAULT '',
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL,

    CHECK (priority IN ('P1', 'P2', 'P3')),
    CHECK (tech_level IN ('LOW', 'MEDIUM', 'HIGH')),
    CHECK (path_assignment IS NULL OR path_assignment IN ('INTERNAL', 'DESIGNATHON')),
    CHECK (revision_number >= 0),
    CHECK (market_price IS NULL OR market_price >= 0),
    CHECK (target_price IS NULL OR target_price >= 0)
);

CREATE INDEX IF NOT EXISTS idx_requirements_state ON requirements(current_state);
CREATE INDEX IF NOT EXISTS idx_requirements_priority ON requirements(priority);
CREATE INDEX IF NOT EXISTS idx_requirements_source ON requirements(source_type);
CREATE INDEX IF NOT EXISTS idx_requirements_created ON requirements(created_at);

CREATE TABLE IF NOT EXISTS state_transitions (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id TEXT NOT NULL REFERENCES requirements(id),
    from_state     TEXT NOT NULL,
    to_state       TEXT NOT NULL,
    notes          TEXT DEFAULT '',
    actor          TEXT DEFAULT '',
    created_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_transitions_requirement ON state_transitions(requirement_id, id);
CREATE INDEX IF NOT EXISTS idx_transitions_created ON state_transitions(created_at);

CREATE TABLE IF NOT EXISTS phase_feedbacks (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id    TEXT NOT NULL REFERENCES requirements(id),
    from_state        TEXT NOT NULL,
    to_state          TEXT NOT NULL,
    phase_notes       TEXT NOT NULL,
    blockers_resolved TEXT DEFAULT '[]',
    key_decisions     TEXT DEFAULT '[]',
    phase_data        TEXT DEFAULT '{}',
    gate_checks       TEXT DEFAULT '{}',
    submitted_by      TEXT DEFAULT '',
    created_at        TEXT NOT NULL,

    CHECK (length(trim(phase_notes)) > 0)
);

CREATE INDEX IF NOT EXISTS idx_feedbacks_requirement ON phase_feedbacks(requirement_id, id);

CREATE TABLE IF NOT EXISTS events (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id TEXT NOT NULL REFERENCES requirements(id),
    event_type     TEXT NOT NULL,
    actor          TEXT DEFAULT '',
    old_value      TEXT,
    new_value      TEXT,
    comment        TEXT DEFAULT '',
    created_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_requirement ON events(requirement_id);
CREATE INDEX IF NOT EXISTS idx_events_created ON events(created_at);

CREATE TABLE IF NOT EXISTS committee_reviews (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id        TEXT NOT NULL REFERENCES requirements(id),
    revision_number       INTEGER NOT NULL DEFAULT 0,
    reviewer              TEXT NOT NULL,
    user_need             REAL NOT NULL,
    technical_feasibility REAL NOT NULL,
    doe_results           REAL NOT NULL,
    cost_effectiveness    REAL NOT NULL,
    safety                REAL NOT NULL,
    weighted_total        REAL NOT NULL,
    recommendation        TEXT NOT NULL,
    feedback_text         TEXT DEFAULT '',
    conditions            TEXT DEFAULT '',
    created_at            TEXT NOT NULL,

    CHECK (recommendation IN ('APPROVE', 'REVISE', 'REJECT'))
);

CREATE INDEX IF NOT EXISTS idx_reviews_requirement ON committee_reviews(requirement_id, revision_number);

CREATE TABLE IF NOT EXISTS committee_decisions (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id        TEXT NOT NULL REFERENCES requirements(id),
    revision_number       INTEGER NOT NULL DEFAULT 0,
    decision              TEXT NOT NULL,
    revision_instructions TEXT DEFAULT '',
    conditions            TEXT DEFAULT '',
    decided_by            TEXT DEFAULT '',
    created_at            TEXT NOT NULL,

    UNIQUE (requirement_id, revision_number),
    CHECK (decision IN ('APPROVE', 'REVISE', 'REJECT'))
);

CREATE TABLE IF NOT EXISTS doe_records (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id       TEXT NOT NULL REFERENCES requirements(id),
    revision_number      INTEGER NOT NULL DEFAULT 0,
    testing_protocol     TEXT DEFAULT '',
    sample_size          INTEGER,
    pre_test_data        TEXT DEFAULT '{}',
    post_test_data       TEXT DEFAULT '{}',
    improvement_metrics  TEXT DEFAULT '{}',
    results_summary      TEXT DEFAULT '',
    beneficiary_feedback TEXT DEFAULT '',
    recorded_by          TEXT DEFAULT '',
    created_at           TEXT NOT NULL,
    updated_at           TEXT NOT NULL,

    UNIQUE (requirement_id, revision_number),
    CHECK (sample_size IS NULL OR sample_size > 0)
);

CREATE TABLE IF NOT EXISTS designathon_events (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT NOT NULL,
    description TEXT DEFAULT '',
    status      TEXT NOT NULL DEFAULT 'planned',
    start_date  TEXT,
    end_date    TEXT,
    created_by  TEXT DEFAULT '',
    created_at  TEXT NOT NULL,

    CHECK (status IN ('planned', 'active', 'completed'))
);

CREATE TABLE IF NOT EXISTS designathon_teams (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id       INTEGER NOT NULL REFERENCES designathon_events(id),
    requirement_id TEXT REFERENCES requirements(id),
    team_name      TEXT NOT NULL,
    members        TEXT DEFAULT '[]',
    submission_url TEXT,
    score          REAL,
    created_at     TEXT NOT NULL,

    UNIQUE (event_id, team_name),
    CHECK (score IS NULL OR (score >= 0 AND score <= 100))
);

CREATE INDEX IF NOT EXISTS idx_teams_event ON designathon_teams(event_id);
CREATE INDEX IF NOT EXISTS idx_teams_requirement ON designathon_teams(requirement_id);
"""

CURRENT_SCHEMA_VERSION = 2
