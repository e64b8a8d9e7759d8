"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional
from uuid import uuid4

from backend.domain.models import ActivityLog, Assignment, Client, Person, Project
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

AssignmentGuard = Callable[[list[Assignment]], None]


@dataclass(frozen=True)
class AssignmentDetail:
    """Assignment joined with person and project columns for reporting."""

    assignment_id: str
    person_id: str
    person_first_name: str
    person_last_name: str
    person_profile: str
    person_status: str
    person_type: str
    project_id: str
    project_name: str
    project_status: str
    start_date: date
    end_date: date
    allocation: float
    is_billable: bool


def new_id() -> str:
    return uuid4().hex


def _to_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    return date.fromisoformat(str(value))


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _row_to_client(row: sqlite3.Row) -> Client:
    return Client(
        client_id=str(row["id"]),
        name=str(row["name"]),
        description=row["description"],
        created_at=_to_datetime(row["created_at"]),
    )


def _row_to_person(row: sqlite3.Row) -> Person:
    return Person(
        person_id=str(row["id"]),
        first_name=str(row["first_name"]),
        last_name=str(row["last_name"]),
        profile=str(row["profile"]),
        status=str(row["status"]),
        person_type=str(row["person_type"]),
        start_date=_to_date(row["start_date"]),
        end_date=_to_date(row["end_date"]),
        created_at=_to_datetime(row["created_at"]),
        updated_at=_to_datetime(row["updated_at"]),
    )


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        project_id=str(row["id"]),
        name=str(row["name"]),
        status=str(row["status"]),
        description=row["description"],
        client_id=row["client_id"],
        start_date=_to_date(row["start_date"]),
        end_date=_to_date(row["end_date"]),
        fte=float(row["fte"]) if row["fte"] is not None else None,
        contract_type=row["contract_type"],
        created_at=_to_datetime(row["created_at"]),
        updated_at=_to_datetime(row["updated_at"]),
    )


def _row_to_assignment(row: sqlite3.Row) -> Assignment:
    return Assignment(
        assignment_id=str(row["id"]),
        person_id=str(row["person_id"]),
        project_id=str(row["project_id"]),
        start_date=_to_date(row["start_date"]),
        end_date=_to_date(row["end_date"]),
        allocation=float(row["allocation"]),
        is_billable=bool(row["is_billable"]),
        created_at=_to_datetime(row["created_at"]),
        updated_at=_to_datetime(row["updated_at"]),
    )


def _row_to_activity_log(row: sqlite3.Row) -> ActivityLog:
    raw_metadata = row["metadata"]
    return ActivityLog(
        log_id=int(row["id"]),
        actor=str(row["actor"]),
        action=str(row["action"]),
        resource_type=str(row["resource_type"]),
        resource_id=str(row["resource_id"]),
        metadata=json.loads(raw_metadata) if raw_metadata else {},
        created_at=_to_datetime(row["created_at"]),
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, roll back on error, always close."""
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.database_timeout_seconds,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        try:
            yield connection
            connection.commit()
        except BaseException:
            connection.rollback()
            raise
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Clients (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL UNIQUE,
                        description TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS People (
                        id TEXT PRIMARY KEY,
                        first_name TEXT NOT NULL,
                        last_name TEXT NOT NULL,
                        profile TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'Active',
                        person_type TEXT NOT NULL DEFAULT 'Internal',
                        start_date TEXT NOT NULL,
                        end_date TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Projects (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        description TEXT,
                        client_id TEXT,
                        status TEXT NOT NULL DEFAULT 'Not Started',
                        start_date TEXT,
                        end_date TEXT,
                        fte REAL CHECK (fte IS NULL OR fte >= 0),
                        contract_type TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (client_id) REFERENCES Clients(id) ON DELETE SET NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Assignments (
                        id TEXT PRIMARY KEY,
                        person_id TEXT NOT NULL,
                        project_id TEXT NOT NULL,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        allocation REAL NOT NULL CHECK (allocation >= 0 AND allocation <= 1),
                        is_billable INTEGER NOT NULL DEFAULT 1 CHECK (is_billable IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (start_date <= end_date),
                        FOREIGN KEY (person_id) REFERENCES People(id) ON DELETE CASCADE,
                        FOREIGN KEY (project_id) REFERENCES Projects(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ActivityLogs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        actor TEXT NOT NULL,
                        action TEXT NOT NULL,
                        resource_type TEXT NOT NULL,
                        resource_id TEXT NOT NULL,
                        metadata TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_assignments_person_dates
                    ON Assignments(person_id, start_date, end_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_assignments_project
                    ON Assignments(project_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_activity_resource
                    ON ActivityLogs(resource_type, resource_id);
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data_if_empty(self, today: Optional[date] = None) -> int:
        """Seed a small demo roster only when no people exist.

        Returns the number of assignments inserted (0 when skipped).
        """
        anchor = today or datetime.now(timezone.utc).date()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM People;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return 0

                client_ids = {name: new_id() for name in ("Acme Corp", "Globex")}
                cursor.executemany(
                    "INSERT INTO Clients (id, name, description) VALUES (?, ?, ?);",
                    [
                        (client_ids["Acme Corp"], "Acme Corp", "Retail platform"),
                        (client_ids["Globex"], "Globex", None),
                    ],
                )

                people = [
                    ("Ana", "Garcia", "Project Manager", "Internal"),
                    ("Bruno", "Diaz", "Frontend Developer", "Internal"),
                    ("Carla", "Lopez", "Backend Developer", "Internal"),
                    ("Dario", "Ruiz", "UX Designer", "External"),
                    ("Elena", "Sanz", "QA", "Internal"),
                ]
                person_ids = [new_id() for _ in people]
                people_start = (anchor - timedelta(days=365)).isoformat()
                cursor.executemany(
                    """
                    INSERT INTO People (
                        id, first_name, last_name, profile, status, person_type, start_date
                    )
                    VALUES (?, ?, ?, ?, 'Active', ?, ?);
                    """,
                    [
                        (person_id, first, last, profile, person_type, people_start)
                        for person_id, (first, last, profile, person_type) in zip(
                            person_ids, people
                        )
                    ],
                )

                projects = [
                    ("Storefront Revamp", client_ids["Acme Corp"], "In Progress", 2.0, "T&M"),
                    ("Loyalty App", client_ids["Acme Corp"], "In Progress", 1.5, "FP-FY"),
                    ("Internal Tooling", None, "On Hold", 0.5, "Internal"),
                ]
                project_ids = [new_id() for _ in projects]
                cursor.executemany(
                    """
                    INSERT INTO Projects (
                        id, name, client_id, status, start_date, end_date, fte, contract_type
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    [
                        (
                            project_id,
                            name,
                            client_id,
                            status,
                            (anchor - timedelta(days=30)).isoformat(),
                            (anchor + timedelta(days=120)).isoformat(),
                            fte,
                            contract_type,
                        )
                        for project_id, (name, client_id, status, fte, contract_type) in zip(
                            project_ids, projects
                        )
                    ],
                )

                # (person index, project index, start offset, end offset, allocation)
                plan = [
                    (0, 0, -14, 60, 0.5),
                    (0, 1, -14, 60, 0.5),
                    (1, 0, -7, 45, 1.0),
                    (2, 0, 0, 30, 0.75),
                    (2, 2, 10, 40, 0.25),
                    (3, 1, -3, 20, 0.5),
                    (4, 1, 5, 50, 0.75),
                ]
                assignment_rows = [
                    (
                        new_id(),
                        person_ids[person_index],
                        project_ids[project_index],
                        (anchor + timedelta(days=start_offset)).isoformat(),
                        (anchor + timedelta(days=end_offset)).isoformat(),
                        allocation,
                    )
                    for person_index, project_index, start_offset, end_offset, allocation in plan
                ]
                cursor.executemany(
                    """
                    INSERT INTO Assignments (
                        id, person_id, project_id, start_date, end_date, allocation
                    )
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    assignment_rows,
                )
            logger.info("Demo seed completed with %s assignments", len(assignment_rows))
            return len(assignment_rows)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    # --- Clients ---

    def list_clients(self) -> list[Client]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, description, created_at
                FROM Clients
                ORDER BY name ASC;
                """
            )
            return [_row_to_client(row) for row in cursor.fetchall()]

    def get_client(self, client_id: str) -> Optional[Client]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, description, created_at FROM Clients WHERE id = ?;",
                (client_id,),
            )
            row = cursor.fetchone()
            return _row_to_client(row) if row is not None else None

    def get_client_by_name(self, name: str) -> Optional[Client]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, description, created_at
                FROM Clients
                WHERE lower(name) = lower(?);
                """,
                (name,),
            )
            row = cursor.fetchone()
            return _row_to_client(row) if row is not None else None

    def insert_client(self, client: Client) -> Client:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO Clients (id, name, description) VALUES (?, ?, ?);",
                (client.client_id, client.name, client.description),
            )
        return self.get_client(client.client_id)

    def update_client(self, client: Client) -> Client:
        with self._connect() as conn:
            conn.execute(
                "UPDATE Clients SET name = ?, description = ? WHERE id = ?;",
                (client.name, client.description, client.client_id),
            )
        return self.get_client(client.client_id)

    def delete_client(self, client_id: str) -> bool:
        """Delete a client; its projects keep existing with client_id NULL."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Clients WHERE id = ?;", (client_id,))
            return cursor.rowcount > 0

    # --- People ---

    def list_people(
        self,
        *,
        status: Optional[str] = None,
        person_type: Optional[str] = None,
        profile: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Person]:
        clauses: list[str] = []
        params: list[Any] = []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if person_type:
            clauses.append("person_type = ?")
            params.append(person_type)
        if profile:
            clauses.append("profile = ?")
            params.append(profile)
        if search:
            clauses.append("(first_name || ' ' || last_name) LIKE ?")
            params.append(f"%{search.strip()}%")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT *
                FROM People
                {where}
                ORDER BY first_name ASC, last_name ASC, id ASC;
                """,
                tuple(params),
            )
            return [_row_to_person(row) for row in cursor.fetchall()]

    def get_person(self, person_id: str) -> Optional[Person]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM People WHERE id = ?;", (person_id,))
            row = cursor.fetchone()
            return _row_to_person(row) if row is not None else None

    def insert_person(self, person: Person) -> Person:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO People (
                    id, first_name, last_name, profile, status, person_type,
                    start_date, end_date
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    person.person_id,
                    person.first_name,
                    person.last_name,
                    person.profile,
                    person.status,
                    person.person_type,
                    _iso(person.start_date),
                    _iso(person.end_date),
                ),
            )
        return self.get_person(person.person_id)

    def update_person(self, person: Person) -> Person:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE People
                SET first_name = ?,
                    last_name = ?,
                    profile = ?,
                    status = ?,
                    person_type = ?,
                    start_date = ?,
                    end_date = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?;
                """,
                (
                    person.first_name,
                    person.last_name,
                    person.profile,
                    person.status,
                    person.person_type,
                    _iso(person.start_date),
                    _iso(person.end_date),
                    person.person_id,
                ),
            )
        return self.get_person(person.person_id)

    def delete_person(self, person_id: str) -> bool:
        """Delete a person together with their assignments."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM People WHERE id = ?;", (person_id,))
            return cursor.rowcount > 0

    # --- Projects ---

    def list_projects(
        self,
        *,
        status: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> list[Project]:
        clauses: list[str] = []
        params: list[Any] = []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if client_id:
            clauses.append("client_id = ?")
            params.append(client_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT *
                FROM Projects
                {where}
                ORDER BY created_at DESC, name ASC;
                """,
                tuple(params),
            )
            return [_row_to_project(row) for row in cursor.fetchall()]

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Projects WHERE id = ?;", (project_id,))
            row = cursor.fetchone()
            return _row_to_project(row) if row is not None else None

    def insert_project(self, project: Project) -> Project:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Projects (
                    id, name, description, client_id, status,
                    start_date, end_date, fte, contract_type
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    project.project_id,
                    project.name,
                    project.description,
                    project.client_id,
                    project.status,
                    _iso(project.start_date),
                    _iso(project.end_date),
                    project.fte,
                    project.contract_type,
                ),
            )
        return self.get_project(project.project_id)

    def update_project(self, project: Project) -> Project:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE Projects
                SET name = ?,
                    description = ?,
                    client_id = ?,
                    status = ?,
                    start_date = ?,
                    end_date = ?,
                    fte = ?,
                    contract_type = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?;
                """,
                (
                    project.name,
                    project.description,
                    project.client_id,
                    project.status,
                    _iso(project.start_date),
                    _iso(project.end_date),
                    project.fte,
                    project.contract_type,
                    project.project_id,
                ),
            )
        return self.get_project(project.project_id)

    def delete_project(self, project_id: str) -> bool:
        """Delete a project together with its assignments."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Projects WHERE id = ?;", (project_id,))
            return cursor.rowcount > 0

    # --- Assignments ---

    def list_assignments(
        self,
        *,
        person_id: Optional[str] = None,
        project_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Assignment]:
        """Return assignments matching the filters.

        ``start_date``/``end_date`` keep assignments overlapping that window.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if person_id:
            clauses.append("person_id = ?")
            params.append(person_id)
        if project_id:
            clauses.append("project_id = ?")
            params.append(project_id)
        if start_date is not None:
            clauses.append("end_date >= ?")
            params.append(start_date.isoformat())
        if end_date is not None:
            clauses.append("start_date <= ?")
            params.append(end_date.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT *
                FROM Assignments
                {where}
                ORDER BY start_date ASC, end_date ASC, id ASC;
                """,
                tuple(params),
            )
            return [_row_to_assignment(row) for row in cursor.fetchall()]

    def list_assignments_for_person(self, person_id: str) -> list[Assignment]:
        """Complete snapshot of a person's assignments."""
        return self.list_assignments(person_id=person_id)

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Assignments WHERE id = ?;", (assignment_id,))
            row = cursor.fetchone()
            return _row_to_assignment(row) if row is not None else None

    def save_assignment(
        self,
        assignment: Assignment,
        guard: Optional[AssignmentGuard] = None,
    ) -> Assignment:
        """Insert or update an assignment inside a write transaction.

        ``guard`` receives the person's assignments as read inside the same
        transaction and may raise to abort the write. ``BEGIN IMMEDIATE``
        takes the write lock before the read, so two concurrent saves cannot
        both validate against the same snapshot.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE;")
            if guard is not None:
                cursor.execute(
                    """
                    SELECT *
                    FROM Assignments
                    WHERE person_id = ?
                    ORDER BY start_date ASC, id ASC;
                    """,
                    (assignment.person_id,),
                )
                guard([_row_to_assignment(row) for row in cursor.fetchall()])
            cursor.execute(
                """
                INSERT INTO Assignments (
                    id, person_id, project_id, start_date, end_date, allocation, is_billable
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    person_id = excluded.person_id,
                    project_id = excluded.project_id,
                    start_date = excluded.start_date,
                    end_date = excluded.end_date,
                    allocation = excluded.allocation,
                    is_billable = excluded.is_billable,
                    updated_at = CURRENT_TIMESTAMP;
                """,
                (
                    assignment.assignment_id,
                    assignment.person_id,
                    assignment.project_id,
                    assignment.start_date.isoformat(),
                    assignment.end_date.isoformat(),
                    assignment.allocation,
                    int(assignment.is_billable),
                ),
            )
            cursor.execute(
                "SELECT * FROM Assignments WHERE id = ?;",
                (assignment.assignment_id,),
            )
            return _row_to_assignment(cursor.fetchone())

    def delete_assignment(self, assignment_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Assignments WHERE id = ?;", (assignment_id,))
            return cursor.rowcount > 0

    def count_assignments(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Assignments;")
            return int(cursor.fetchone()["count"])

    def list_assignment_details(
        self,
        start_date: date,
        end_date: date,
        *,
        project_id: Optional[str] = None,
    ) -> list[AssignmentDetail]:
        """Assignments overlapping the window, joined with person and project."""
        params: list[Any] = [start_date.isoformat(), end_date.isoformat()]
        project_clause = ""
        if project_id:
            project_clause = "AND a.project_id = ?"
            params.append(project_id)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT
                    a.id AS assignment_id,
                    a.person_id,
                    p.first_name,
                    p.last_name,
                    p.profile,
                    p.status AS person_status,
                    p.person_type,
                    a.project_id,
                    pr.name AS project_name,
                    pr.status AS project_status,
                    a.start_date,
                    a.end_date,
                    a.allocation,
                    a.is_billable
                FROM Assignments AS a
                INNER JOIN People AS p ON p.id = a.person_id
                INNER JOIN Projects AS pr ON pr.id = a.project_id
                WHERE a.end_date >= ?
                  AND a.start_date <= ?
                  {project_clause}
                ORDER BY a.start_date ASC, p.first_name ASC, a.id ASC;
                """,
                tuple(params),
            )
            return [
                AssignmentDetail(
                    assignment_id=str(row["assignment_id"]),
                    person_id=str(row["person_id"]),
                    person_first_name=str(row["first_name"]),
                    person_last_name=str(row["last_name"]),
                    person_profile=str(row["profile"]),
                    person_status=str(row["person_status"]),
                    person_type=str(row["person_type"]),
                    project_id=str(row["project_id"]),
                    project_name=str(row["project_name"]),
                    project_status=str(row["project_status"]),
                    start_date=_to_date(row["start_date"]),
                    end_date=_to_date(row["end_date"]),
                    allocation=float(row["allocation"]),
                    is_billable=bool(row["is_billable"]),
                )
                for row in cursor.fetchall()
            ]

    # --- Activity log ---

    def log_activity(
        self,
        *,
        actor: str,
        action: str,
        resource_type: str,
        resource_id: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Persist an audit entry and return its id."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO ActivityLogs (actor, action, resource_type, resource_id, metadata)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    actor,
                    action,
                    resource_type,
                    resource_id,
                    json.dumps(metadata or {}, default=str, sort_keys=True),
                ),
            )
            return int(cursor.lastrowid)

    def list_activity_logs(
        self,
        *,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[ActivityLog]:
        clauses: list[str] = []
        params: list[Any] = []
        if resource_type:
            clauses.append("resource_type = ?")
            params.append(resource_type)
        if resource_id:
            clauses.append("resource_id = ?")
            params.append(resource_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT *
                FROM ActivityLogs
                {where}
                ORDER BY id DESC
                LIMIT ?;
                """,
                tuple(params),
            )
            return [_row_to_activity_log(row) for row in cursor.fetchall()]
