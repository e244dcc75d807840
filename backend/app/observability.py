from contextlib import ContextDecorator

from prometheus_client import Counter, Histogram
from sqlalchemy import event


class QueryCounter(ContextDecorator):
    """Count SQL statements executed on a SQLAlchemy engine within a scope."""

    def __init__(self, engine):
        self.engine = engine
        self.count = 0
        self._enabled = False

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        self.count += 1

    def __enter__(self):
        if self.engine is not None:
            event.listen(self.engine, 'before_cursor_execute', self._before_cursor_execute)
            self._enabled = True
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._enabled:
            event.remove(self.engine, 'before_cursor_execute', self._before_cursor_execute)
        return False


class ExtractionMetrics:
    """Prometheus metrics for roster analysis and spreadsheet generation."""

    def __init__(self):
        self.analysis_latency = Histogram(
            'roster_analysis_latency_seconds',
            'Latency of a full roster image analysis (model call included)',
            buckets=(5, 15, 30, 60, 120, 240, 480, 600),
        )
        self.records_extracted = Counter(
            'roster_records_extracted_total',
            'Shift records produced by roster analysis, by disposition',
            ['disposition'],
        )
        self.identity_matches = Counter(
            'roster_identity_matches_total',
            'Shift records reconciled against the reference roster, by result',
            ['result'],
        )
        self.analysis_outcomes = Counter(
            'roster_analysis_outcomes_total',
            'Count of roster analyses by outcome',
            ['outcome'],
        )
        self.generation_latency = Histogram(
            'roster_spreadsheet_generation_latency_seconds',
            'Latency of rendering and storing both roster spreadsheets',
        )

    def observe_analysis(self, duration_s: float, records: int, dropped: int, matched: int, unmatched: int):
        self.analysis_latency.observe(duration_s)
        self.records_extracted.labels(disposition='kept').inc(records)
        self.records_extracted.labels(disposition='dropped').inc(dropped)
        self.identity_matches.labels(result='matched').inc(matched)
        self.identity_matches.labels(result='unmatched').inc(unmatched)

    def increment_outcome(self, outcome: str, value: int = 1):
        self.analysis_outcomes.labels(outcome=outcome).inc(value)

    def observe_generation_latency(self, duration_s: float):
        self.generation_latency.observe(duration_s)


extraction_metrics = ExtractionMetrics()
