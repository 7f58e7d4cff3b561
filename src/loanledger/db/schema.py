# ABOUTME: SQL DDL statements for the loan ledger database schema.
# ABOUTME: Defines books, users, and loans tables with counter CHECKs and indexes.

SCHEMA_V1 = """
-- Catalog: one row per title, with its physical copy counters
CREATE TABLE books (
    id               TEXT PRIMARY KEY,
    accession_number TEXT NOT NULL,
    title            TEXT NOT NULL,
    author           TEXT,
    total_copies     INTEGER NOT NULL DEFAULT 1 CHECK (total_copies >= 0),
    available_copies INTEGER NOT NULL DEFAULT 1,
    status           TEXT NOT NULL DEFAULT 'AVAILABLE',
    reference_only   INTEGER NOT NULL DEFAULT 0,
    version          INTEGER NOT NULL DEFAULT 0,
    date_added       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    CHECK (available_copies >= 0 AND available_copies <= total_copies)
);

CREATE UNIQUE INDEX idx_books_accession ON books(accession_number);
CREATE INDEX idx_books_title ON books(title);

-- Directory: borrowers and staff
CREATE TABLE users (
    id           TEXT PRIMARY KEY,
    employee_id  TEXT NOT NULL,
    full_name    TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'ACTIVE',
    issued_count INTEGER NOT NULL DEFAULT 0 CHECK (issued_count >= 0),
    version      INTEGER NOT NULL DEFAULT 0,
    date_added   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_users_employee_id ON users(employee_id);
CREATE INDEX idx_users_full_name ON users(full_name);

-- Ledger: loans are never deleted
CREATE TABLE loans (
    id            TEXT PRIMARY KEY,
    book_id       TEXT NOT NULL REFERENCES books(id),
    user_id       TEXT NOT NULL REFERENCES users(id),
    issuer_id     TEXT NOT NULL REFERENCES users(id),
    returner_id   TEXT REFERENCES users(id),
    issued_at     TEXT NOT NULL,
    due_at        TEXT NOT NULL,
    returned_at   TEXT,
    renewal_count INTEGER NOT NULL DEFAULT 0 CHECK (renewal_count >= 0),
    status        TEXT NOT NULL DEFAULT 'ACTIVE'
                  CHECK (status IN ('ACTIVE', 'OVERDUE', 'RETURNED')),
    notes         TEXT,
    version       INTEGER NOT NULL DEFAULT 0,
    CHECK ((status = 'RETURNED') = (returned_at IS NOT NULL))
);

CREATE INDEX idx_loans_book_user ON loans(book_id, user_id);
CREATE INDEX idx_loans_user_issued ON loans(user_id, issued_at);
CREATE INDEX idx_loans_status_due ON loans(status, due_at);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# Ordered (version, sql) pairs applied by open_ledger() past SCHEMA_V1.
SCHEMA_V2 = """
CREATE INDEX idx_loans_issued_at ON loans(issued_at);
CREATE INDEX idx_loans_issuer ON loans(issuer_id);

INSERT INTO schema_version (version) VALUES (2);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (2, SCHEMA_V2),
]
