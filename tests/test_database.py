import unittest

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from tests.base import ApiTestCase
from school_admin import db
from school_admin.models import User
from school_admin.security import TEACHER, hash_password


class DatabaseErrorTests(ApiTestCase):

    def test_error_body_omits_bound_parameters(self):
        def add_unbindable_user():
            db.session.add(User(username='t77', password_hash=hash_password('secretpw'),
                                role=TEACHER, name='T', email={'x': 1}))
            db.session.commit()

        self.app.add_url_rule('/api/test/unbindable-user', 'unbindable_user',
                              add_unbindable_user, methods=['POST'])
        with self.assertLogs('school_admin.errors', level='ERROR') as logs:
            resp = self.client.post('/api/test/unbindable-user')

        self.assertEqual(resp.status_code, 500)
        self.assertIn('error', resp.get_json())
        for text in (resp.get_data(as_text=True), '\n'.join(logs.output)):
            self.assertNotIn('scrypt:', text)
            self.assertNotIn('pbkdf2:', text)
            self.assertNotIn('[parameters', text)
        self.assertIsNone(User.query.filter_by(username='t77').first())

    def test_error_without_driver_cause_uses_fixed_message(self):
        def fail():
            raise SQLAlchemyError('[parameters: (\'scrypt:32768:8:1$abc\',)]')

        self.app.add_url_rule('/api/test/db-failure', 'db_failure', fail)
        with self.assertLogs('school_admin.errors', level='ERROR'):
            resp = self.client.get('/api/test/db-failure')
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json(), {'error': 'Database error'})


class QueryCountTests(ApiTestCase):
    """List endpoints load related names eagerly; statement count does not grow with rows."""

    def setUp(self):
        super().setUp()
        self.login_admin()

    def _statements(self, url):
        db.session.remove()
        seen = []

        def record(conn, cursor, statement, parameters, context, executemany):
            seen.append(statement)

        event.listen(db.engine, 'before_cursor_execute', record)
        try:
            resp = self.client.get(url)
        finally:
            event.remove(db.engine, 'before_cursor_execute', record)
        self.assertEqual(resp.status_code, 200, url)
        self.assertTrue(resp.get_json(), url)
        return len(seen)

    def assertStatementsConstant(self, url, add_rows):
        before = self._statements(url)
        add_rows()
        self.assertEqual(self._statements(url), before, url)

    def test_students(self):
        def add_rows():
            self.client.post('/api/classes', json={'name': 'Class 8-C', 'grade': '8'})
            for n in (1, 2):
                self.client.post('/api/students', json={
                    'name': f'New {n}', 'username': f'new{n}', 'password': 'pw',
                    'roll_number': f'S10{n}', 'class_id': 3,
                })
        self.assertStatementsConstant('/api/students', add_rows)

    def test_fees(self):
        self.client.post('/api/fees', json={'student_id': 1, 'fee_type': 'Tuition', 'amount': 500})

        def add_rows():
            for student_id in (2, 3, 4):
                self.client.post('/api/fees', json={'student_id': student_id, 'fee_type': 'Tuition',
                                                    'amount': 500})
        self.assertStatementsConstant('/api/fees', add_rows)

    def test_grades(self):
        self.client.post('/api/grades', json={'student_id': 1, 'subject_id': 1, 'exam_type': 'Quiz'})

        def add_rows():
            for student_id, subject_id in ((2, 2), (3, 3), (4, 3)):
                self.client.post('/api/grades', json={'student_id': student_id, 'subject_id': subject_id,
                                                      'exam_type': 'Quiz'})
        self.assertStatementsConstant('/api/grades', add_rows)

    def test_attendance_report(self):
        def record(student_id, class_id):
            return {'student_id': student_id, 'class_id': class_id, 'date': '2024-09-02', 'status': 'present'}

        self.client.post('/api/attendance', json={'records': [record(1, 1)]})

        def add_rows():
            self.client.post('/api/attendance', json={'records': [record(2, 1), record(3, 2), record(4, 2)]})
        self.assertStatementsConstant('/api/attendance/report', add_rows)

    def test_timetable(self):
        def slot(class_id, subject_id, start, end):
            return {'class_id': class_id, 'subject_id': subject_id, 'day_of_week': 'Monday',
                    'start_time': start, 'end_time': end}

        self.client.post('/api/timetable', json=slot(1, 1, '08:00', '09:00'))

        def add_rows():
            self.client.post('/api/timetable', json=slot(1, 2, '09:00', '10:00'))
            self.client.post('/api/timetable', json=slot(2, 3, '08:00', '09:00'))
        self.assertStatementsConstant('/api/timetable', add_rows)


if __name__ == "__main__":
    unittest.main()
