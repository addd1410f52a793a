import unittest
from datetime import date

from tests.base import ApiTestCase
from school_admin import db
from school_admin.models import Fee


class FeeTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.login_admin()

    def _create(self, **overrides):
        body = {'student_id': 1, 'fee_type': 'Tuition', 'amount': 500, 'due_date': '2024-09-01'}
        body.update(overrides)
        return self.client.post('/api/fees', json=body)

    def test_create_then_pay(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 200)
        fee = self.client.get('/api/fees/1').get_json()
        self.assertEqual(fee['status'], 'pending')
        self.assertIsNone(fee['paid_date'])
        self.assertEqual(fee['roll_number'], 'S001')

        resp = self.client.put('/api/fees/1/pay')
        self.assertEqual(resp.status_code, 200)
        fee = self.client.get('/api/fees/1').get_json()
        self.assertEqual(fee['status'], 'paid')
        self.assertEqual(fee['paid_date'], date.today().isoformat())

    def test_repayment_overwrites_paid_date(self):
        self._create()
        fee = db.session.get(Fee, 1)
        fee.status = 'paid'
        fee.paid_date = date(2020, 1, 1)
        db.session.commit()
        self.assertEqual(self.client.put('/api/fees/1/pay').status_code, 200)
        self.assertEqual(db.session.get(Fee, 1).paid_date, date.today())

    def test_pay_missing_is_404(self):
        self.assertEqual(self.client.put('/api/fees/999/pay').status_code, 404)

    def test_required_fields(self):
        resp = self.client.post('/api/fees', json={'student_id': 1, 'fee_type': 'Tuition'})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('amount', resp.get_json()['error'])

    def test_invalid_amount(self):
        self.assertEqual(self._create(amount='lots').status_code, 400)

    def test_unknown_student_is_constraint_violation(self):
        resp = self._create(student_id=999)
        self.assertEqual(resp.status_code, 400)
        self.assertIn('FOREIGN KEY', resp.get_json()['error'])
        self.assertEqual(Fee.query.count(), 0)

    def test_filter_by_status_and_student(self):
        self._create()
        self._create(student_id=2, due_date='2024-10-01')
        self.client.put('/api/fees/2/pay')
        pending = self.client.get('/api/fees?status=pending').get_json()
        self.assertEqual([f['id'] for f in pending], [1])
        by_student = self.client.get('/api/fees?student_id=2').get_json()
        self.assertEqual([f['status'] for f in by_student], ['paid'])
        every = self.client.get('/api/fees').get_json()
        self.assertEqual([f['due_date'] for f in every], ['2024-10-01', '2024-09-01'])

    def test_overdue_is_set_explicitly(self):
        self._create(due_date='2000-01-01')
        self.assertEqual(self.client.get('/api/fees/1').get_json()['status'], 'pending')
        resp = self.client.put('/api/fees/1', json={'status': 'overdue'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get('/api/fees/1').get_json()['status'], 'overdue')
        self.assertEqual(self.client.put('/api/fees/1', json={'status': 'forgiven'}).status_code, 400)

    def test_dashboard_fee_counts(self):
        self._create()
        self._create()
        self.client.put('/api/fees/1/pay')
        stats = self.client.get('/api/dashboard/stats').get_json()
        self.assertEqual(stats['pendingFees'], 1)
        self.assertEqual(stats['paidFees'], 1)

    def test_delete(self):
        self._create()
        self.assertEqual(self.client.delete('/api/fees/1').status_code, 200)
        self.assertEqual(self.client.get('/api/fees/1').status_code, 404)
        self.assertEqual(self.client.delete('/api/fees/1').status_code, 404)


if __name__ == "__main__":
    unittest.main()
