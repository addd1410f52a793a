import unittest
from datetime import date

from tests.base import ApiTestCase
from school_admin.models import Attendance


def _records(day='2024-09-02', status='present'):
    return [
        {'student_id': 1, 'class_id': 1, 'date': day, 'status': status},
        {'student_id': 2, 'class_id': 1, 'date': day, 'status': 'absent'},
    ]


class AttendanceTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.login_teacher()

    def _triples(self):
        return {(a.student_id, a.date, a.class_id, a.status) for a in Attendance.query.all()}

    def test_roster_requires_class_and_date(self):
        self.assertEqual(self.client.get('/api/attendance?class_id=1').status_code, 400)
        self.assertEqual(self.client.get('/api/attendance?date=2024-09-02').status_code, 400)

    def test_roster_lists_class_with_unmarked_students(self):
        rows = self.client.get('/api/attendance?class_id=1&date=2024-09-02').get_json()
        self.assertEqual([r['roll_number'] for r in rows], ['S001', 'S002'])
        self.assertTrue(all(r['status'] is None for r in rows))

        self.client.post('/api/attendance', json={'records': _records()[:1]})
        rows = self.client.get('/api/attendance?class_id=1&date=2024-09-02').get_json()
        self.assertEqual(rows[0]['status'], 'present')
        self.assertEqual(rows[0]['student_name'], 'Alice Brown')
        self.assertIsNone(rows[1]['status'])

    def test_resubmitting_a_batch_is_idempotent(self):
        resp = self.client.post('/api/attendance', json={'records': _records()})
        self.assertEqual(resp.status_code, 200)
        once = self._triples()
        self.client.post('/api/attendance', json={'records': _records()})
        self.assertEqual(self._triples(), once)
        self.assertEqual(Attendance.query.count(), 2)

    def test_upsert_overwrites_status(self):
        self.client.post('/api/attendance', json={'records': _records()})
        self.client.post('/api/attendance', json={'records': _records(status='late')})
        row = Attendance.query.filter_by(student_id=1, date=date(2024, 9, 2), class_id=1).one()
        self.assertEqual(row.status, 'late')
        self.assertEqual(Attendance.query.count(), 2)

    def test_duplicate_keys_within_one_batch_keep_last(self):
        records = _records() + [{'student_id': 1, 'class_id': 1, 'date': '2024-09-02', 'status': 'late'}]
        self.assertEqual(self.client.post('/api/attendance', json={'records': records}).status_code, 200)
        self.assertEqual(Attendance.query.count(), 2)
        self.assertEqual(Attendance.query.filter_by(student_id=1).one().status, 'late')

    def test_batch_with_unknown_student_applies_nothing(self):
        records = _records() + [{'student_id': 999, 'class_id': 1, 'date': '2024-09-02', 'status': 'present'}]
        resp = self.client.post('/api/attendance', json={'records': records})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(Attendance.query.count(), 0)

    def test_batch_with_invalid_status_applies_nothing(self):
        self.client.post('/api/attendance', json={'records': _records()})
        before = self._triples()
        records = _records(status='late') + [{'student_id': 3, 'class_id': 2, 'date': '2024-09-02', 'status': 'sick'}]
        resp = self.client.post('/api/attendance', json={'records': records})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self._triples(), before)

    def test_records_must_be_a_list(self):
        self.assertEqual(self.client.post('/api/attendance', json={'records': 'x'}).status_code, 400)
        self.assertEqual(self.client.post('/api/attendance', json={}).status_code, 400)

    def test_record_missing_fields(self):
        resp = self.client.post('/api/attendance', json={'records': [{'student_id': 1, 'class_id': 1}]})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('date', resp.get_json()['error'])

    def test_report_date_range_is_inclusive_and_newest_first(self):
        for day in ('2024-09-01', '2024-09-02', '2024-09-03', '2024-09-04'):
            self.client.post('/api/attendance', json={'records': _records(day=day)[:1]})
        rows = self.client.get('/api/attendance/report?student_id=1&from=2024-09-02&to=2024-09-03').get_json()
        self.assertEqual([r['date'] for r in rows], ['2024-09-03', '2024-09-02'])
        self.assertEqual(rows[0]['class_name'], 'Class 10-A')
        self.assertEqual(rows[0]['student_name'], 'Alice Brown')

    def test_report_is_capped(self):
        self.app.config['ATTENDANCE_REPORT_LIMIT'] = 3
        for day in range(1, 6):
            self.client.post('/api/attendance', json={'records': _records(day=f'2024-09-0{day}')})
        rows = self.client.get('/api/attendance/report').get_json()
        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[0]['date'], '2024-09-05')

    def test_report_rejects_bad_dates(self):
        self.assertEqual(self.client.get('/api/attendance/report?from=yesterday').status_code, 400)

    def test_dashboard_counts_today(self):
        today = date.today().isoformat()
        self.client.post('/api/attendance', json={'records': _records(day=today)})
        stats = self.client.get('/api/dashboard/stats').get_json()
        self.assertEqual(stats['presentToday'], 1)
        self.assertEqual(stats['absentToday'], 1)


if __name__ == "__main__":
    unittest.main()
