import os
import unittest
from datetime import date, timedelta

from backend.app import create_app, db
from backend.app.extraction.matcher import RosterMatcher
from backend.app.extraction.schemas import ShiftRecord
from backend.app.observability import QueryCounter
from backend.app.repositories.agent_repository import AgentRepository
from backend.app.services.alias_service import generate_default_aliases


class TestMatcherQueryBudget(unittest.TestCase):
    # one alias lookup and one name search per distinct person, plus the active roster once
    RECONCILE_QUERY_BUDGET = 12

    def setUp(self):
        os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
        self.app = create_app(vision_client=object())
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.repo = AgentRepository()
        for cedula, name in (
            ('111', 'JESUS ANTONIO MAGALLANES'),
            ('222', 'ANA MARIA PEREZ'),
            ('333', 'LUIS FERNANDO TORRES'),
        ):
            self.repo.create_with_aliases(
                generate_default_aliases(name),
                cedula=cedula,
                full_name=name,
                campaign='AVC',
                supervisor='LAURA GOMEZ',
            )

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _week(self, name):
        start = date(2025, 6, 16)
        return [
            ShiftRecord(person_name=name, date=start + timedelta(days=offset), day_of_week='Lunes')
            for offset in range(7)
        ]

    def test_reconcile_query_budget(self):
        records = []
        for name in ('JESUS MAGALLANES', 'ANA MARIA', 'LUIS TORRES', 'PEDRO NADIE', 'CARLOS TORRES'):
            records.extend(self._week(name))

        with QueryCounter(db.engine) as counter:
            stats = RosterMatcher(self.repo).reconcile(records)

        self.assertEqual(stats.total, 35)
        self.assertEqual(stats.matched, 28)
        self.assertLessEqual(
            counter.count,
            self.RECONCILE_QUERY_BUDGET,
            f'Reconciliation exceeded query budget: {counter.count} > {self.RECONCILE_QUERY_BUDGET}',
        )


if __name__ == '__main__':
    unittest.main()
