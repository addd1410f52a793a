from school_admin import db
from datetime import datetime, date

ROLE_VALUES = ('admin', 'teacher', 'student')
ATTENDANCE_STATUSES = ('present', 'absent', 'late')
FEE_STATUSES = ('pending', 'paid', 'overdue')
WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


def _iso(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(value, date):
        return value.isoformat()
    return value.strftime('%H:%M')


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    classes_taught = db.relationship('SchoolClass', backref='teacher', lazy=True,
                                     order_by='SchoolClass.name')
    subjects_taught = db.relationship('Subject', backref='teacher', lazy=True)
    announcements = db.relationship('Announcement', backref='author', lazy=True)

    __table_args__ = (
        db.CheckConstraint("role IN ('admin','teacher','student')", name='ck_users_role'),
    )

    def principal(self):
        """Identity stored in the session after login."""
        return {'id': self.id, 'username': self.username, 'role': self.role, 'name': self.name}

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
            'name': self.name,
            'email': self.email,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f"User('{self.username}', role='{self.role}')"


class SchoolClass(db.Model):
    __tablename__ = 'classes'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    grade = db.Column(db.String(20), nullable=False)
    section = db.Column(db.String(10))
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    capacity = db.Column(db.Integer, default=30)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    students = db.relationship('Student', backref='school_class', lazy=True)
    subjects = db.relationship('Subject', backref='school_class', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'grade': self.grade,
            'section': self.section,
            'teacher_id': self.teacher_id,
            'teacher_name': self.teacher.name if self.teacher else None,
            'capacity': self.capacity,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f"SchoolClass('{self.name}', grade='{self.grade}')"


class Student(db.Model):
    __tablename__ = 'students'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True)
    roll_number = db.Column(db.String(50), unique=True, nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'))
    parent_name = db.Column(db.String(120))
    parent_phone = db.Column(db.String(30))
    address = db.Column(db.Text)
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(20))
    admission_date = db.Column(db.Date, default=date.today)

    user = db.relationship('User', backref=db.backref('student', uselist=False), lazy=True)
    attendances = db.relationship('Attendance', backref='student', lazy=True)
    grades = db.relationship('Grade', backref='student', lazy=True)
    fees = db.relationship('Fee', backref='student', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'roll_number': self.roll_number,
            'class_id': self.class_id,
            'parent_name': self.parent_name,
            'parent_phone': self.parent_phone,
            'address': self.address,
            'date_of_birth': _iso(self.date_of_birth),
            'gender': self.gender,
            'admission_date': _iso(self.admission_date),
            'name': self.user.name if self.user else None,
            'username': self.user.username if self.user else None,
            'email': self.user.email if self.user else None,
            'class_name': self.school_class.name if self.school_class else None,
            'grade': self.school_class.grade if self.school_class else None,
        }

    def __repr__(self):
        return f"Student(roll_number='{self.roll_number}')"


class Subject(db.Model):
    __tablename__ = 'subjects'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(20), unique=True, nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'))
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'class_id': self.class_id,
            'teacher_id': self.teacher_id,
            'class_name': self.school_class.name if self.school_class else None,
            'teacher_name': self.teacher.name if self.teacher else None,
        }

    def __repr__(self):
        return f"Subject('{self.code}')"


class Attendance(db.Model):
    __tablename__ = 'attendance'
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False)

    school_class = db.relationship('SchoolClass', lazy=True)

    __table_args__ = (
        db.UniqueConstraint('student_id', 'date', 'class_id', name='uix_attendance_student_date_class'),
        db.CheckConstraint("status IN ('present','absent','late')", name='ck_attendance_status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'class_id': self.class_id,
            'date': _iso(self.date),
            'status': self.status,
            'student_name': self.student.user.name if self.student and self.student.user else None,
            'class_name': self.school_class.name if self.school_class else None,
        }

    def __repr__(self):
        return f"Attendance(student_id={self.student_id}, date='{self.date}', status='{self.status}')"


class Grade(db.Model):
    __tablename__ = 'grades'
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    exam_type = db.Column(db.String(50), nullable=False)
    marks_obtained = db.Column(db.Float)
    total_marks = db.Column(db.Float, default=100)
    grade_letter = db.Column(db.String(5))
    remarks = db.Column(db.Text)
    date = db.Column(db.Date, default=date.today)

    subject = db.relationship('Subject', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'subject_id': self.subject_id,
            'exam_type': self.exam_type,
            'marks_obtained': self.marks_obtained,
            'total_marks': self.total_marks,
            'grade_letter': self.grade_letter,
            'remarks': self.remarks,
            'date': _iso(self.date),
            'student_name': self.student.user.name if self.student and self.student.user else None,
            'subject_name': self.subject.name if self.subject else None,
            'subject_code': self.subject.code if self.subject else None,
        }


class Fee(db.Model):
    __tablename__ = 'fees'
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False)
    fee_type = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    due_date = db.Column(db.Date)
    paid_date = db.Column(db.Date)
    status = db.Column(db.String(10), nullable=False, default='pending')

    __table_args__ = (
        db.CheckConstraint("status IN ('pending','paid','overdue')", name='ck_fees_status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'fee_type': self.fee_type,
            'amount': self.amount,
            'due_date': _iso(self.due_date),
            'paid_date': _iso(self.paid_date),
            'status': self.status,
            'student_name': self.student.user.name if self.student and self.student.user else None,
            'roll_number': self.student.roll_number if self.student else None,
        }

    def __repr__(self):
        return f"Fee(student_id={self.student_id}, amount={self.amount}, status='{self.status}')"


class Announcement(db.Model):
    __tablename__ = 'announcements'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    target_role = db.Column(db.String(20), nullable=False, default='all')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'author_id': self.author_id,
            'author_name': self.author.name if self.author else None,
            'target_role': self.target_role,
            'created_at': _iso(self.created_at),
        }


class TimetableEntry(db.Model):
    __tablename__ = 'timetable'
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    day_of_week = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    school_class = db.relationship('SchoolClass', lazy=True)
    subject = db.relationship('Subject', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'class_id': self.class_id,
            'subject_id': self.subject_id,
            'day_of_week': self.day_of_week,
            'start_time': _iso(self.start_time),
            'end_time': _iso(self.end_time),
            'subject_name': self.subject.name if self.subject else None,
            'code': self.subject.code if self.subject else None,
            'class_name': self.school_class.name if self.school_class else None,
            'teacher_name': self.subject.teacher.name if self.subject and self.subject.teacher else None,
        }

    def __repr__(self):
        return f"TimetableEntry(class_id={self.class_id}, {self.day_of_week} {self.start_time})"
