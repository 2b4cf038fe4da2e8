#!/usr/bin/env python3
"""
Database module for Turning Point 360.

Handles all data persistence using Turso (libSQL) for cloud hosting,
with fallback to local SQLite for development.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager

import config
from errors import PersistenceError
from framework import NOMINATION_STATUSES, RELATIONSHIP_TYPES, STATUS_PENDING, TEMPLATE_TYPES

# Try to import libsql for Turso, fall back to sqlite3 for local dev
try:
    import libsql_experimental as libsql
    USING_TURSO = True
    STORE_ERRORS = (sqlite3.Error, getattr(libsql, 'Error', sqlite3.Error))
except ImportError:
    USING_TURSO = False
    STORE_ERRORS = (sqlite3.Error,)

logger = logging.getLogger(__name__)


def _in_list(values):
    return ", ".join(f"'{v}'" for v in values)


class Database:
    def __init__(self, db_path=None):
        """
        Initialize database connection.

        If Turso credentials are available (via environment or Streamlit secrets),
        connects to Turso cloud database. Otherwise falls back to local SQLite.
        """
        self.db_path = db_path or config.get_db_path()
        self.turso_url, self.turso_token = config.get_turso_credentials()

        self.init_database()

    @property
    def is_turso(self):
        return bool(self.turso_url and self.turso_token and USING_TURSO)

    def get_connection(self):
        """Get a database connection."""
        try:
            if self.is_turso:
                return libsql.connect(database=self.turso_url, auth_token=self.turso_token)
            conn = sqlite3.connect(self.db_path)
            conn.execute("PRAGMA foreign_keys = ON")
            return conn
        except STORE_ERRORS as e:
            raise PersistenceError(f"Could not connect to the database: {e}") from e

    @contextmanager
    def transaction(self):
        """
        Yield a connection that is committed on success and rolled back on any
        error. Store errors are re-raised as PersistenceError.
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except STORE_ERRORS as e:
            conn.rollback()
            logger.error("Database write failed, rolled back: %s", e)
            raise PersistenceError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _rows_to_dicts(cursor, rows):
        if not rows:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    def _fetchall(self, query, params=(), conn=None):
        """Execute a query and fetch all results as list of dicts."""
        if conn is not None:
            cursor = conn.execute(query, params)
            return self._rows_to_dicts(cursor, cursor.fetchall())
        with self.transaction() as own_conn:
            cursor = own_conn.execute(query, params)
            return self._rows_to_dicts(cursor, cursor.fetchall())

    def _fetchone(self, query, params=(), conn=None):
        """Execute a query and fetch one result as dict."""
        rows = self._fetchall(query, params, conn)
        return rows[0] if rows else None

    def _insert(self, query, params, conn=None):
        """Execute an INSERT and return the new row id."""
        if conn is not None:
            return conn.execute(query, params).lastrowid
        with self.transaction() as own_conn:
            return own_conn.execute(query, params).lastrowid

    def init_database(self):
        """Initialize the database schema."""
        with self.transaction() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS clients (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS programmes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    client_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (client_id) REFERENCES clients(id)
                )
            """)

            # Coachees: the leaders being assessed
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS coachees (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    programme_id INTEGER NOT NULL,
                    full_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (programme_id) REFERENCES programmes(id)
                )
            """)

            # Nominees: people giving peer feedback, shared across coachees
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS nominees (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    full_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS assessment_templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    programme_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    template_type TEXT NOT NULL CHECK (template_type IN ({_in_list(TEMPLATE_TYPES)})),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (programme_id) REFERENCES programmes(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS assessment_responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    coachee_id INTEGER NOT NULL,
                    assessment_template_id INTEGER NOT NULL,
                    respondent_email TEXT,
                    answers_json TEXT,
                    submitted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (coachee_id) REFERENCES coachees(id),
                    FOREIGN KEY (assessment_template_id) REFERENCES assessment_templates(id)
                )
            """)

            # One row per onboarding submission converted into nominations
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS nomination_batches (
                    batch_key TEXT PRIMARY KEY,
                    coachee_id INTEGER NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (coachee_id) REFERENCES coachees(id)
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS nominations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    coachee_id INTEGER NOT NULL,
                    nominee_id INTEGER,
                    relationship_type TEXT NOT NULL CHECK (relationship_type IN ({_in_list(RELATIONSHIP_TYPES)})),
                    pending_nominee_name TEXT,
                    status TEXT NOT NULL DEFAULT '{STATUS_PENDING}' CHECK (status IN ({_in_list(NOMINATION_STATUSES)})),
                    admin_notes TEXT,
                    batch_key TEXT,
                    created_at TIMESTAMP NOT NULL,
                    processed_at TIMESTAMP,
                    FOREIGN KEY (coachee_id) REFERENCES coachees(id),
                    FOREIGN KEY (nominee_id) REFERENCES nominees(id),
                    FOREIGN KEY (batch_key) REFERENCES nomination_batches(batch_key)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_nominations_coachee_status
                ON nominations (coachee_id, status)
            """)

    # ==========================================
    # CLIENT & PROGRAMME MANAGEMENT
    # ==========================================

    def add_client(self, name):
        """Add a new client organisation."""
        return self._insert("INSERT INTO clients (name) VALUES (?)", (name.strip(),))

    def get_all_clients(self):
        return self._fetchall("SELECT * FROM clients ORDER BY name")

    def add_programme(self, client_id, name):
        """Add a programme under a client."""
        return self._insert(
            "INSERT INTO programmes (client_id, name) VALUES (?, ?)",
            (client_id, name.strip()),
        )

    def get_programme(self, programme_id):
        return self._fetchone("""
            SELECT p.*, c.name as client_name
            FROM programmes p
            JOIN clients c ON p.client_id = c.id
            WHERE p.id = ?
        """, (programme_id,))

    def get_programmes(self, client_id=None):
        """Get programmes with their client name and coachee counts."""
        query = """
            SELECT
                p.*,
                c.name as client_name,
                (SELECT COUNT(*) FROM coachees co WHERE co.programme_id = p.id) as coachee_count
            FROM programmes p
            JOIN clients c ON p.client_id = c.id
        """
        params = ()
        if client_id is not None:
            query += " WHERE p.client_id = ?"
            params = (client_id,)
        query += " ORDER BY c.name, p.name"
        return self._fetchall(query, params)

    # ==========================================
    # COACHEE MANAGEMENT
    # ==========================================

    def add_coachee(self, programme_id, full_name, email):
        """Add a coachee to a programme. Email is stored lower-cased."""
        return self._insert("""
            INSERT INTO coachees (programme_id, full_name, email)
            VALUES (?, ?, ?)
        """, (programme_id, full_name.strip(), email.strip().lower()))

    def add_coachees(self, programme_id, coachees):
        """Batch-insert coachees given as dicts with full_name and email."""
        with self.transaction() as conn:
            conn.executemany("""
                INSERT INTO coachees (programme_id, full_name, email)
                VALUES (?, ?, ?)
            """, [(programme_id, c['full_name'], c['email']) for c in coachees])
        return len(coachees)

    def get_coachee(self, coachee_id, conn=None):
        """Get a specific coachee by ID, with programme and client names."""
        return self._fetchone("""
            SELECT
                co.*,
                p.name as programme_name,
                c.name as client_name
            FROM coachees co
            JOIN programmes p ON co.programme_id = p.id
            JOIN clients c ON p.client_id = c.id
            WHERE co.id = ?
        """, (coachee_id,), conn)

    def get_coachee_by_email(self, email):
        return self._fetchone(
            "SELECT * FROM coachees WHERE email = ?",
            ((email or '').strip().lower(),),
        )

    def get_coachees(self, programme_id=None):
        """Get coachees with their nomination counts."""
        query = """
            SELECT
                co.*,
                p.name as programme_name,
                COUNT(n.id) as nomination_count,
                COUNT(CASE WHEN n.status = 'pending' THEN 1 END) as pending_count
            FROM coachees co
            JOIN programmes p ON co.programme_id = p.id
            LEFT JOIN nominations n ON n.coachee_id = co.id
        """
        params = ()
        if programme_id is not None:
            query += " WHERE co.programme_id = ?"
            params = (programme_id,)
        query += " GROUP BY co.id ORDER BY co.full_name"
        return self._fetchall(query, params)

    def get_existing_coachee_emails(self, emails):
        """Return the subset of the given emails that already belong to coachees."""
        if not emails:
            return set()
        placeholders = ", ".join("?" for _ in emails)
        rows = self._fetchall(
            f"SELECT email FROM coachees WHERE email IN ({placeholders})",
            tuple(emails),
        )
        return {r['email'].lower() for r in rows}

    def delete_coachee(self, coachee_id):
        """Delete a coachee with their nominations and assessment responses."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM nominations WHERE coachee_id = ?", (coachee_id,))
            conn.execute("DELETE FROM nomination_batches WHERE coachee_id = ?", (coachee_id,))
            conn.execute("DELETE FROM assessment_responses WHERE coachee_id = ?", (coachee_id,))
            conn.execute("DELETE FROM coachees WHERE id = ?", (coachee_id,))

    # ==========================================
    # NOMINEE MANAGEMENT
    # ==========================================

    def add_nominee(self, full_name, email, conn=None):
        """Add a nominee. The caller normalises the email."""
        return self._insert(
            "INSERT INTO nominees (full_name, email) VALUES (?, ?)",
            (full_name, email),
            conn,
        )

    def get_nominee(self, nominee_id, conn=None):
        return self._fetchone("SELECT * FROM nominees WHERE id = ?", (nominee_id,), conn)

    def get_nominee_by_email(self, email, conn=None):
        return self._fetchone("SELECT * FROM nominees WHERE email = ?", (email,), conn)

    def get_all_nominees(self):
        return self._fetchall("SELECT * FROM nominees ORDER BY full_name")

    def search_nominees(self, term):
        """Case-insensitive substring search on nominee name or email."""
        term = (term or '').strip().lower()
        if not term:
            return self.get_all_nominees()
        pattern = f"%{term}%"
        return self._fetchall("""
            SELECT * FROM nominees
            WHERE LOWER(full_name) LIKE ? OR LOWER(email) LIKE ?
            ORDER BY full_name
        """, (pattern, pattern))

    # ==========================================
    # ASSESSMENT TEMPLATES & RESPONSES
    # ==========================================

    def add_template(self, programme_id, name, template_type):
        return self._insert("""
            INSERT INTO assessment_templates (programme_id, name, template_type)
            VALUES (?, ?, ?)
        """, (programme_id, name, template_type))

    def get_template(self, template_id):
        return self._fetchone("SELECT * FROM assessment_templates WHERE id = ?", (template_id,))

    def get_templates_for_programme(self, programme_id):
        """Return {template_type: template_id} for a programme."""
        rows = self._fetchall("""
            SELECT id, template_type FROM assessment_templates
            WHERE programme_id = ?
            ORDER BY id
        """, (programme_id,))
        template_map = {}
        for row in rows:
            template_map.setdefault(row['template_type'], row['id'])
        return template_map

    def save_assessment_response(self, coachee_id, template_id, respondent_email, answers):
        """Store a submitted assessment response and return its id."""
        return self._insert("""
            INSERT INTO assessment_responses
                (coachee_id, assessment_template_id, respondent_email, answers_json)
            VALUES (?, ?, ?, ?)
        """, (coachee_id, template_id, respondent_email, json.dumps(answers or {})))

    def get_response(self, response_id):
        return self._fetchone("SELECT * FROM assessment_responses WHERE id = ?", (response_id,))

    def get_unconverted_onboarding_responses(self):
        """Onboarding responses with no nomination batch recorded against them."""
        return self._fetchall("""
            SELECT r.id, r.coachee_id, r.respondent_email, r.submitted_at, co.full_name as coachee_name
            FROM assessment_responses r
            JOIN assessment_templates t ON r.assessment_template_id = t.id
            JOIN coachees co ON r.coachee_id = co.id
            LEFT JOIN nomination_batches b ON b.batch_key = 'response:' || r.id
            WHERE t.template_type = 'onboarding' AND b.batch_key IS NULL
            ORDER BY r.submitted_at
        """)

    def get_responses(self, coachee_id, template_id=None, respondent_email=None):
        """Get submitted responses recorded against a coachee."""
        query = """
            SELECT id, coachee_id, assessment_template_id, respondent_email, submitted_at
            FROM assessment_responses
            WHERE coachee_id = ? AND submitted_at IS NOT NULL
        """
        params = [coachee_id]
        if template_id is not None:
            query += " AND assessment_template_id = ?"
            params.append(template_id)
        if respondent_email is not None:
            query += " AND LOWER(respondent_email) = ?"
            params.append(respondent_email.strip().lower())
        return self._fetchall(query, tuple(params))

    # ==========================================
    # NOMINATIONS
    # ==========================================

    _NOMINATION_SELECT = """
        SELECT
            n.*,
            co.full_name as coachee_name,
            co.email as coachee_email,
            p.id as programme_id,
            p.name as programme_name,
            c.name as client_name,
            ne.full_name as nominee_name,
            ne.email as nominee_email
        FROM nominations n
        JOIN coachees co ON n.coachee_id = co.id
        JOIN programmes p ON co.programme_id = p.id
        JOIN clients c ON p.client_id = c.id
        LEFT JOIN nominees ne ON n.nominee_id = ne.id
    """

    def claim_batch(self, conn, batch_key, coachee_id):
        """
        Record a nomination batch key. Returns False if the key was already
        used, in which case nothing is written.
        """
        existing = self._fetchone(
            "SELECT batch_key FROM nomination_batches WHERE batch_key = ?",
            (batch_key,), conn,
        )
        if existing:
            return False
        conn.execute(
            "INSERT INTO nomination_batches (batch_key, coachee_id) VALUES (?, ?)",
            (batch_key, coachee_id),
        )
        return True

    def insert_nominations(self, conn, records):
        """Insert nomination records in order within an open transaction."""
        conn.executemany("""
            INSERT INTO nominations
                (coachee_id, nominee_id, relationship_type, pending_nominee_name,
                 status, admin_notes, batch_key, created_at, processed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            (r['coachee_id'], r['nominee_id'], r['relationship_type'], r['pending_nominee_name'],
             r['status'], r['admin_notes'], r['batch_key'], r['created_at'], r['processed_at'])
            for r in records
        ])

    def get_nomination(self, nomination_id, conn=None):
        return self._fetchone(
            self._NOMINATION_SELECT + " WHERE n.id = ?", (nomination_id,), conn
        )

    def get_nominations_for_batch(self, batch_key, conn=None):
        return self._fetchall(
            self._NOMINATION_SELECT + " WHERE n.batch_key = ? ORDER BY n.id",
            (batch_key,), conn,
        )

    def get_nominations_for_coachee(self, coachee_id, status=None):
        query = self._NOMINATION_SELECT + " WHERE n.coachee_id = ?"
        params = [coachee_id]
        if status:
            query += " AND n.status = ?"
            params.append(status)
        query += " ORDER BY n.id"
        return self._fetchall(query, tuple(params))

    def get_nominations(self, status=None, relationship_type=None, programme_id=None):
        """Get nominations for the admin list, newest first."""
        conditions = []
        params = []
        if status:
            conditions.append("n.status = ?")
            params.append(status)
        if relationship_type:
            conditions.append("n.relationship_type = ?")
            params.append(relationship_type)
        if programme_id is not None:
            conditions.append("p.id = ?")
            params.append(programme_id)

        query = self._NOMINATION_SELECT
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY n.created_at DESC, n.id DESC"
        return self._fetchall(query, tuple(params))

    def update_pending_nomination(self, conn, nomination_id, status, processed_at,
                                  admin_notes, nominee_id=None):
        """
        Move a nomination out of pending. The update only matches rows that are
        still pending; returns the number of rows changed (0 or 1).
        When nominee_id is None the existing link is left as it is.
        """
        cursor = conn.execute("""
            UPDATE nominations
            SET status = ?,
                processed_at = ?,
                admin_notes = ?,
                nominee_id = COALESCE(?, nominee_id)
            WHERE id = ? AND status = ?
        """, (status, processed_at, admin_notes, nominee_id, nomination_id, STATUS_PENDING))
        return cursor.rowcount

    # ==========================================
    # STATISTICS
    # ==========================================

    def get_dashboard_stats(self):
        """Get overall statistics for the admin dashboard."""
        return self._fetchone("""
            SELECT
                (SELECT COUNT(*) FROM coachees) as total_coachees,
                (SELECT COUNT(*) FROM nominees) as total_nominees,
                (SELECT COUNT(*) FROM nominations WHERE status = 'pending') as pending_nominations,
                (SELECT COUNT(*) FROM nominations WHERE status = 'approved') as approved_nominations,
                (SELECT COUNT(*) FROM nominations WHERE status = 'rejected') as rejected_nominations,
                (SELECT COUNT(*) FROM assessment_responses) as total_responses
        """)

    def get_connection_info(self):
        """Return info about the current database connection."""
        if self.is_turso:
            return {
                'type': 'Turso Cloud',
                'url': self.turso_url,
                'status': 'Connected'
            }
        return {
            'type': 'Local SQLite',
            'path': self.db_path,
            'status': 'Connected'
        }
