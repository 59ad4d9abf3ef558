import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import psycopg2
import psycopg2.extras
from loguru import logger
from psycopg2.pool import ThreadedConnectionPool

# ---------------------------
# DB bootstrap
# ---------------------------
DDL = '''
CREATE TABLE IF NOT EXISTS feedback (
  id BIGSERIAL PRIMARY KEY,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
  email TEXT NOT NULL,
  client_name TEXT NOT NULL,
  project TEXT NOT NULL,
  reactivity INT NOT NULL CHECK (reactivity BETWEEN 1 AND 5),
  reactivity_suggestion TEXT NULL,
  deadlines INT NOT NULL CHECK (deadlines BETWEEN 1 AND 5),
  deadlines_suggestion TEXT NULL,
  deliverables INT NOT NULL CHECK (deliverables BETWEEN 1 AND 5),
  deliverables_suggestion TEXT NULL,
  professionalism INT NOT NULL CHECK (professionalism BETWEEN 1 AND 5),
  professionalism_suggestion TEXT NULL,
  global_comment TEXT NULL,
  CONSTRAINT uniq_client_project UNIQUE (client_name, project)
);
CREATE INDEX IF NOT EXISTS idx_feedback_created_at ON feedback (created_at);
'''

INSERT_FEEDBACK = '''
INSERT INTO feedback (
  email, client_name, project,
  reactivity, reactivity_suggestion,
  deadlines, deadlines_suggestion,
  deliverables, deliverables_suggestion,
  professionalism, professionalism_suggestion,
  global_comment
) VALUES (
  %(email)s, %(client_name)s, %(project)s,
  %(reactivity)s, %(reactivity_suggestion)s,
  %(deadlines)s, %(deadlines_suggestion)s,
  %(deliverables)s, %(deliverables_suggestion)s,
  %(professionalism)s, %(professionalism_suggestion)s,
  %(global_comment)s
)
'''

# avg_total is the mean of the four per-dimension averages
MONTHLY_STATS = '''
SELECT
  project,
  COUNT(*)::int AS responses,
  AVG(reactivity)::float AS avg_reactivity,
  AVG(deadlines)::float AS avg_deadlines,
  AVG(deliverables)::float AS avg_deliverables,
  AVG(professionalism)::float AS avg_professionalism,
  ((AVG(reactivity) + AVG(deadlines) + AVG(deliverables) + AVG(professionalism)) / 4.0)::float AS avg_total
FROM feedback
WHERE created_at >= (%(start)s::date)
  AND created_at < ((%(start)s::date) + INTERVAL '1 month')
GROUP BY project
ORDER BY avg_total ASC, project ASC
'''


class FeedbackStore:
    """Handle on the PostgreSQL database holding the feedback table.

    Created once at startup, shared by every request handler and closed on
    shutdown. Each call borrows a pooled connection for a single statement
    and commits (or rolls back) before handing it back. Callers wait while
    all `maxconn` connections are in use.
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 5):
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: Optional[ThreadedConnectionPool] = None
        # getconn() fails instead of waiting when the pool is full
        self._slots = threading.BoundedSemaphore(maxconn)

    def open(self) -> None:
        if self._pool is None:
            self._pool = ThreadedConnectionPool(self.minconn, self.maxconn, dsn=self.dsn)
            logger.info('Postgres pool opened (min={}, max={})', self.minconn, self.maxconn)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info('Postgres pool closed')

    @contextmanager
    def connection(self) -> Iterator[Any]:
        if self._pool is None:
            raise RuntimeError('FeedbackStore is not open')
        pool = self._pool
        self._slots.acquire()
        try:
            conn = pool.getconn()
            try:
                yield conn
                conn.commit()
            except Exception:
                if not conn.closed:
                    conn.rollback()
                raise
            finally:
                pool.putconn(conn, close=bool(conn.closed))
        finally:
            self._slots.release()

    def init_schema(self) -> None:
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(DDL)
        logger.info('feedback schema ready')

    def server_version(self) -> str:
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute('SELECT version() AS version')
                return cur.fetchone()[0]

    def insert_feedback(self, row: Dict[str, Any]) -> None:
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(INSERT_FEEDBACK, row)

    def monthly_project_stats(self, start: str) -> List[Dict[str, Any]]:
        with self.connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(MONTHLY_STATS, {'start': start})
                return [dict(r) for r in cur.fetchall()]
