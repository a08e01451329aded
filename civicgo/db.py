import sqlite3
from pathlib import Path
from typing import List, Optional

from .models import ProofMetadata

DB_PATH = Path(__file__).parent / "proofs.db"

COLUMNS = "cid, report_id, proof_timestamp, city, created_at, verification_status, verified_at"


class ProofRegistry:
    """Local index of proofs this deployment has created, keyed by CID."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or DB_PATH)

    def get_conn(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_conn()
        cur = conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS proofs (
            cid TEXT PRIMARY KEY,
            report_id TEXT NOT NULL,
            proof_timestamp TEXT,
            city TEXT,
            created_at TEXT,
            verification_status TEXT DEFAULT 'pending',
            verified_at TEXT
        );
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS proofs_report_id ON proofs(report_id);")
        conn.commit()
        conn.close()

    def record(self, meta: ProofMetadata):
        conn = self.get_conn()
        conn.execute(
            f"INSERT OR REPLACE INTO proofs ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (meta.cid, meta.report_id, meta.proof_timestamp, meta.city, meta.created_at,
             meta.verification_status, meta.verified_at),
        )
        conn.commit()
        conn.close()

    def mark(self, cid: str, status: str, verified_at: str) -> bool:
        conn = self.get_conn()
        cur = conn.execute(
            "UPDATE proofs SET verification_status=?, verified_at=? WHERE cid=?", (status, verified_at, cid)
        )
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def get(self, cid: str) -> Optional[ProofMetadata]:
        conn = self.get_conn()
        row = conn.execute(f"SELECT {COLUMNS} FROM proofs WHERE cid=?", (cid,)).fetchone()
        conn.close()
        return ProofMetadata(**dict(row)) if row else None

    def for_report(self, report_id: str) -> Optional[ProofMetadata]:
        conn = self.get_conn()
        row = conn.execute(
            f"SELECT {COLUMNS} FROM proofs WHERE report_id=? ORDER BY created_at DESC LIMIT 1", (report_id,)
        ).fetchone()
        conn.close()
        return ProofMetadata(**dict(row)) if row else None

    def list(self, limit: int = 50) -> List[ProofMetadata]:
        conn = self.get_conn()
        rows = conn.execute(f"SELECT {COLUMNS} FROM proofs ORDER BY created_at DESC LIMIT ?", (limit,)).fetchall()
        conn.close()
        return [ProofMetadata(**dict(r)) for r in rows]
