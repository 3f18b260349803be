# test_roster_service.py

import os
import unittest
from sqlalchemy.orm import Session

os.environ['DATABASE_URL'] = 'sqlite://'

from app import app, db
from models import PLANNED, ACTUAL, PlannedShift
from store import RosterStore
from roster_service import RosterError, get_status_map, get_roster_for_date, upsert_assignments
from report_builder import build_month_report

class RosterServiceTestCase(unittest.TestCase):
    """Query and save paths, run against a store bound to an in-memory database."""

    def setUp(self):
        self.ctx = app.app_context()
        self.ctx.push()
        db.drop_all()
        db.create_all()
        self.store = RosterStore(db.session)
        self.amy = self.store.add_nurse('Amy', 1).nurse_id
        self.bea = self.store.add_nurse('Bea', 1).nurse_id

    def tearDown(self):
        db.session.remove()
        self.ctx.pop()

    def test_upsert_overwrites_instead_of_duplicating(self):
        upsert_assignments(self.store, PLANNED, '2025-07-01', [{'nurseId': self.amy, 'shift': 'M', 'ward': 'ICU'}])
        upsert_assignments(self.store, PLANNED, '2025-07-01', [{'nurseId': self.amy, 'shift': 'A', 'ward': 'ER'}])
        self.assertEqual(PlannedShift.query.filter_by(nurse_id=self.amy).count(), 1)
        row = get_roster_for_date(self.store, '2025-07-01')[0]
        self.assertEqual((row['planned_shift'], row['planned_ward']), ('A', 'ER'))

    def test_overlapping_saves_do_not_collide(self):
        first, second = RosterStore(Session(db.engine)), RosterStore(Session(db.engine))
        try:
            first.upsert(PLANNED, self.amy, '2025-07-01', 'M', 'ICU')
            second.upsert(PLANNED, self.amy, '2025-07-01', 'N', 'ER')
            first.session.commit()
            second.session.commit()
        finally:
            first.session.close()
            second.session.close()
        rows = PlannedShift.query.filter_by(nurse_id=self.amy).all()
        self.assertEqual([(r.shift_code, r.ward) for r in rows], [('N', 'ER')])

    def test_empty_shift_clears_the_cell(self):
        upsert_assignments(self.store, ACTUAL, '2025-07-05', [{'nurseId': self.amy, 'shift': 'G', 'ward': 'OPD'}])
        upsert_assignments(self.store, ACTUAL, '2025-07-05', [{'nurseId': self.amy, 'shift': '', 'ward': ''}])
        row = get_roster_for_date(self.store, '2025-07-05')[0]
        self.assertEqual((row['actual_shift'], row['actual_ward']), ('', ''))
        self.assertEqual(get_status_map(self.store, '2025-07'), {})

    def test_ward_dropped_for_leave_codes(self):
        upsert_assignments(self.store, PLANNED, '2025-07-02', [{'nurseId': self.amy, 'shift': 'wo', 'ward': 'ICU'}])
        row = get_roster_for_date(self.store, '2025-07-02')[0]
        self.assertEqual((row['planned_shift'], row['planned_ward']), ('WO', ''))

    def test_failed_batch_applies_nothing(self):
        entries = [{'nurseId': self.amy, 'shift': 'M', 'ward': ''}, {'nurseId': 9999, 'shift': 'M', 'ward': ''}]
        with self.assertRaises(RosterError) as ctx:
            upsert_assignments(self.store, PLANNED, '2025-07-03', entries)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn('Entry 1 (nurse 9999)', ctx.exception.details)
        self.assertEqual(PlannedShift.query.count(), 0)

    def test_rejects_unknown_variant_and_bad_date(self):
        with self.assertRaises(RosterError):
            upsert_assignments(self.store, 'draft', '2025-07-03', [])
        with self.assertRaises(RosterError):
            upsert_assignments(self.store, PLANNED, '2025-13-03', [])
        with self.assertRaises(RosterError) as ctx:
            get_roster_for_date(self.store, None)
        self.assertEqual(ctx.exception.message, 'Date query parameter is required')

    def test_status_map_both_variants(self):
        upsert_assignments(self.store, PLANNED, '2025-07-10', [{'nurseId': self.amy, 'shift': 'M', 'ward': ''}])
        upsert_assignments(self.store, ACTUAL, '2025-07-10', [{'nurseId': self.bea, 'shift': 'PL', 'ward': ''}])
        upsert_assignments(self.store, ACTUAL, '2025-06-30', [{'nurseId': self.bea, 'shift': 'PL', 'ward': ''}])
        self.assertEqual(get_status_map(self.store, '2025-07'), {'2025-07-10': {'planned': True, 'actual': True}})

    def test_month_report_from_store(self):
        upsert_assignments(self.store, PLANNED, '2025-07-01', [{'nurseId': self.amy, 'shift': 'M', 'ward': ''}])
        upsert_assignments(self.store, ACTUAL, '2025-07-01', [{'nurseId': self.amy, 'shift': 'SL', 'ward': ''}])
        upsert_assignments(self.store, PLANNED, '2025-07-02', [{'nurseId': self.amy, 'shift': 'WO', 'ward': ''}])
        report = build_month_report(self.store, '2025-07')
        amy = report['rows'][0]
        self.assertEqual(amy['cells'][0]['display'], 'SL')
        self.assertTrue(amy['cells'][0]['highlight'])
        self.assertEqual(amy['cells'][1]['display'], 'WO')
        self.assertEqual((amy['planned_shifts'], amy['deviations'], amy['deviation']), (1, 1, '100.0%'))
        self.assertEqual(report['rows'][1]['deviation'], '0.0%')

if __name__ == '__main__':
    unittest.main()
