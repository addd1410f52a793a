import logging
from datetime import date, datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import and_, case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import contains_eager, joinedload, selectinload

from school_admin import db
from school_admin.errors import ConstraintViolation, NotFound, ValidationError
from school_admin.models import (
    ATTENDANCE_STATUSES, FEE_STATUSES, WEEKDAYS,
    Announcement, Attendance, Fee, Grade, SchoolClass, Student, Subject, TimetableEntry, User,
)
from school_admin.security import ROLES, STUDENT, TEACHER, crud_required, current_user, hash_password

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')
health_bp = Blueprint('health', __name__)

ANNOUNCEMENT_TARGETS = ('all',) + ROLES


# --- Helpers ---
def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def _require(data, *fields):
    missing = [f for f in fields if _blank(data.get(f))]
    if missing:
        raise ValidationError(f"Required fields missing: {', '.join(missing)}")


def _string(value, field, strip=True):
    """Text field from a JSON body; ``None`` passes through, other non-strings are rejected."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'Invalid {field}, expected a string')
    return value.strip() if strip else value


def _optional_int(value, field):
    if _blank(value):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}')


def _optional_float(value, field):
    if _blank(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}')


def _parse_date(value, field):
    if _blank(value):
        return None
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid {field}, expected YYYY-MM-DD')


def _parse_time(value, field):
    raw = str(value).strip()
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f'Invalid {field}, expected HH:MM')


def _choice(value, allowed, field):
    if value not in allowed:
        raise ValidationError(f"Invalid {field}, expected one of: {', '.join(allowed)}")
    return value


def _get_or_404(model, obj_id):
    obj = db.session.get(model, obj_id)
    if obj is None:
        raise NotFound()
    return obj


def _teacher_id(value):
    tid = _optional_int(value, 'teacher_id')
    if tid is not None:
        teacher = db.session.get(User, tid)
        if not teacher or teacher.role != TEACHER:
            raise ValidationError('teacher_id does not refer to a teacher')
    return tid


def _commit(action):
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Constraint violation during %s: %s", action, e.orig)
        raise ConstraintViolation(str(e.orig))


def _ok():
    return jsonify({'success': True})


# --- Health ---
@health_bp.route('/healthz')
def healthz():
    return jsonify({
        'status': 'ok',
        'students': Student.query.count(),
        'teachers': User.query.filter_by(role=TEACHER).count(),
        'classes': SchoolClass.query.count(),
    }), 200


# --- Dashboard ---
@api_bp.route('/dashboard/stats')
@crud_required('dashboard', 'read')
def dashboard_stats():
    today = date.today()
    limit = current_app.config['DASHBOARD_ANNOUNCEMENT_LIMIT']
    recent = (Announcement.query.options(joinedload(Announcement.author))
              .order_by(Announcement.created_at.desc(), Announcement.id.desc())
              .limit(limit).all())
    return jsonify({
        'totalStudents': Student.query.count(),
        'totalTeachers': User.query.filter_by(role=TEACHER).count(),
        'totalClasses': SchoolClass.query.count(),
        'totalSubjects': Subject.query.count(),
        'presentToday': Attendance.query.filter_by(date=today, status='present').count(),
        'absentToday': Attendance.query.filter_by(date=today, status='absent').count(),
        'pendingFees': Fee.query.filter_by(status='pending').count(),
        'paidFees': Fee.query.filter_by(status='paid').count(),
        'recentAnnouncements': [a.to_dict() for a in recent],
    })


# --- Students ---
@api_bp.route('/students')
@crud_required('student', 'read')
def list_students():
    search = request.args.get('search', '').strip()
    class_id = request.args.get('class_id', type=int)
    q = (Student.query.join(User, Student.user_id == User.id)
         .options(contains_eager(Student.user), joinedload(Student.school_class)))
    if search:
        like = f'%{search}%'
        q = q.filter(or_(User.name.like(like), Student.roll_number.like(like)))
    if class_id:
        q = q.filter(Student.class_id == class_id)
    return jsonify([s.to_dict() for s in q.order_by(Student.roll_number).all()])


@api_bp.route('/students/<int:student_id>')
@crud_required('student', 'read')
def get_student(student_id):
    return jsonify(_get_or_404(Student, student_id).to_dict())


@api_bp.route('/students', methods=['POST'])
@crud_required('student', 'create')
def create_student():
    data = _payload()
    _require(data, 'name', 'username', 'password', 'roll_number')
    class_id = _optional_int(data.get('class_id'), 'class_id')
    dob = _parse_date(data.get('date_of_birth'), 'date_of_birth')
    admission = _parse_date(data.get('admission_date'), 'admission_date') or date.today()
    profile = {field: _string(data.get(field), field)
               for field in ('roll_number', 'parent_name', 'parent_phone', 'address', 'gender')}

    # Login identity and academic record are written together or not at all
    user = User(
        username=_string(data['username'], 'username'),
        password_hash=hash_password(_string(data['password'], 'password', strip=False)),
        role=STUDENT,
        name=_string(data['name'], 'name'),
        email=_string(data.get('email'), 'email'),
    )
    try:
        db.session.add(user)
        db.session.flush()
        db.session.add(Student(
            user_id=user.id,
            class_id=class_id,
            date_of_birth=dob,
            admission_date=admission,
            **profile,
        ))
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Student creation rejected: %s", e.orig)
        raise ConstraintViolation(str(e.orig))
    _commit('student creation')
    logger.info("Created student '%s'", user.username)
    return _ok()


@api_bp.route('/students/<int:student_id>', methods=['PUT'])
@crud_required('student', 'update')
def update_student(student_id):
    student = _get_or_404(Student, student_id)
    data = _payload()
    if 'name' in data:
        if _blank(data['name']):
            raise ValidationError('Required fields missing: name')
        student.user.name = _string(data['name'], 'name')
    if 'email' in data:
        student.user.email = _string(data['email'], 'email')
    if 'class_id' in data:
        student.class_id = _optional_int(data['class_id'], 'class_id')
    if 'date_of_birth' in data:
        student.date_of_birth = _parse_date(data['date_of_birth'], 'date_of_birth')
    for field in ('parent_name', 'parent_phone', 'address', 'gender'):
        if field in data:
            setattr(student, field, _string(data[field], field))
    _commit('student update')
    return _ok()


@api_bp.route('/students/<int:student_id>', methods=['DELETE'])
@crud_required('student', 'delete')
def delete_student(student_id):
    student = _get_or_404(Student, student_id)
    user_id = student.user_id
    # Dependents first, then the record, then its login identity
    Attendance.query.filter_by(student_id=student_id).delete()
    Grade.query.filter_by(student_id=student_id).delete()
    Fee.query.filter_by(student_id=student_id).delete()
    Student.query.filter_by(id=student_id).delete()
    if user_id is not None:
        User.query.filter_by(id=user_id).delete()
    _commit('student deletion')
    logger.info("Deleted student %s and its records", student_id)
    return _ok()


# --- Teachers ---
def _teacher_dict(teacher):
    d = teacher.to_dict()
    d['classes'] = ', '.join(c.name for c in teacher.classes_taught) or None
    return d


def _get_teacher_or_404(teacher_id):
    teacher = db.session.get(User, teacher_id)
    if teacher is None or teacher.role != TEACHER:
        raise NotFound()
    return teacher


@api_bp.route('/teachers')
@crud_required('teacher', 'read')
def list_teachers():
    teachers = (User.query.filter_by(role=TEACHER)
                .options(selectinload(User.classes_taught))
                .order_by(User.name).all())
    return jsonify([_teacher_dict(t) for t in teachers])


@api_bp.route('/teachers/<int:teacher_id>')
@crud_required('teacher', 'read')
def get_teacher(teacher_id):
    return jsonify(_teacher_dict(_get_teacher_or_404(teacher_id)))


@api_bp.route('/teachers', methods=['POST'])
@crud_required('teacher', 'create')
def create_teacher():
    data = _payload()
    _require(data, 'name', 'username', 'password')
    db.session.add(User(
        username=_string(data['username'], 'username'),
        password_hash=hash_password(_string(data['password'], 'password', strip=False)),
        role=TEACHER,
        name=_string(data['name'], 'name'),
        email=_string(data.get('email'), 'email'),
    ))
    _commit('teacher creation')
    return _ok()


@api_bp.route('/teachers/<int:teacher_id>', methods=['PUT'])
@crud_required('teacher', 'update')
def update_teacher(teacher_id):
    teacher = _get_teacher_or_404(teacher_id)
    data = _payload()
    if 'name' in data:
        if _blank(data['name']):
            raise ValidationError('Required fields missing: name')
        teacher.name = _string(data['name'], 'name')
    if 'email' in data:
        teacher.email = _string(data['email'], 'email')
    _commit('teacher update')
    return _ok()


@api_bp.route('/teachers/<int:teacher_id>', methods=['DELETE'])
@crud_required('teacher', 'delete')
def delete_teacher(teacher_id):
    _get_teacher_or_404(teacher_id)
    SchoolClass.query.filter_by(teacher_id=teacher_id).update({'teacher_id': None})
    Subject.query.filter_by(teacher_id=teacher_id).update({'teacher_id': None})
    Announcement.query.filter_by(author_id=teacher_id).delete()
    User.query.filter_by(id=teacher_id, role=TEACHER).delete()
    _commit('teacher deletion')
    return _ok()


# --- Classes ---
@api_bp.route('/classes')
@crud_required('class', 'read')
def list_classes():
    rows = (db.session.query(SchoolClass, func.count(Student.id))
            .options(selectinload(SchoolClass.teacher))
            .outerjoin(Student, Student.class_id == SchoolClass.id)
            .group_by(SchoolClass.id)
            .order_by(SchoolClass.grade, SchoolClass.section)
            .all())
    result = []
    for cls, student_count in rows:
        d = cls.to_dict()
        d['student_count'] = student_count
        result.append(d)
    return jsonify(result)


@api_bp.route('/classes/<int:class_id>')
@crud_required('class', 'read')
def get_class(class_id):
    cls = _get_or_404(SchoolClass, class_id)
    d = cls.to_dict()
    d['student_count'] = len(cls.students)
    return jsonify(d)


@api_bp.route('/classes', methods=['POST'])
@crud_required('class', 'create')
def create_class():
    data = _payload()
    _require(data, 'name', 'grade')
    db.session.add(SchoolClass(
        name=_string(data['name'], 'name'),
        grade=_string(data['grade'], 'grade'),
        section=_string(data.get('section'), 'section'),
        teacher_id=_teacher_id(data.get('teacher_id')),
        capacity=_optional_int(data.get('capacity'), 'capacity') or 30,
    ))
    _commit('class creation')
    return _ok()


@api_bp.route('/classes/<int:class_id>', methods=['PUT'])
@crud_required('class', 'update')
def update_class(class_id):
    cls = _get_or_404(SchoolClass, class_id)
    data = _payload()
    for field in ('name', 'grade'):
        if field in data:
            if _blank(data[field]):
                raise ValidationError(f'Required fields missing: {field}')
            setattr(cls, field, _string(data[field], field))
    if 'section' in data:
        cls.section = _string(data['section'], 'section')
    if 'teacher_id' in data:
        cls.teacher_id = _teacher_id(data['teacher_id'])
    if 'capacity' in data:
        cls.capacity = _optional_int(data['capacity'], 'capacity') or 30
    _commit('class update')
    return _ok()


@api_bp.route('/classes/<int:class_id>', methods=['DELETE'])
@crud_required('class', 'delete')
def delete_class(class_id):
    _get_or_404(SchoolClass, class_id)
    # Attendance history keeps its foreign key; a class with attendance is refused
    Student.query.filter_by(class_id=class_id).update({'class_id': None})
    Subject.query.filter_by(class_id=class_id).update({'class_id': None})
    TimetableEntry.query.filter_by(class_id=class_id).delete()
    SchoolClass.query.filter_by(id=class_id).delete()
    _commit('class deletion')
    return _ok()


# --- Subjects ---
@api_bp.route('/subjects')
@crud_required('subject', 'read')
def list_subjects():
    class_id = request.args.get('class_id', type=int)
    q = Subject.query.options(joinedload(Subject.school_class), joinedload(Subject.teacher))
    if class_id:
        q = q.filter(Subject.class_id == class_id)
    return jsonify([s.to_dict() for s in q.order_by(Subject.id).all()])


@api_bp.route('/subjects/<int:subject_id>')
@crud_required('subject', 'read')
def get_subject(subject_id):
    return jsonify(_get_or_404(Subject, subject_id).to_dict())


@api_bp.route('/subjects', methods=['POST'])
@crud_required('subject', 'create')
def create_subject():
    data = _payload()
    _require(data, 'name', 'code')
    db.session.add(Subject(
        name=_string(data['name'], 'name'),
        code=_string(data['code'], 'code'),
        class_id=_optional_int(data.get('class_id'), 'class_id'),
        teacher_id=_teacher_id(data.get('teacher_id')),
    ))
    _commit('subject creation')
    return _ok()


@api_bp.route('/subjects/<int:subject_id>', methods=['PUT'])
@crud_required('subject', 'update')
def update_subject(subject_id):
    subject = _get_or_404(Subject, subject_id)
    data = _payload()
    for field in ('name', 'code'):
        if field in data:
            if _blank(data[field]):
                raise ValidationError(f'Required fields missing: {field}')
            setattr(subject, field, _string(data[field], field))
    if 'class_id' in data:
        subject.class_id = _optional_int(data['class_id'], 'class_id')
    if 'teacher_id' in data:
        subject.teacher_id = _teacher_id(data['teacher_id'])
    _commit('subject update')
    return _ok()


@api_bp.route('/subjects/<int:subject_id>', methods=['DELETE'])
@crud_required('subject', 'delete')
def delete_subject(subject_id):
    _get_or_404(Subject, subject_id)
    # Grades keep their foreign key; a subject with grades is refused
    TimetableEntry.query.filter_by(subject_id=subject_id).delete()
    Subject.query.filter_by(id=subject_id).delete()
    _commit('subject deletion')
    return _ok()


# --- Attendance ---
@api_bp.route('/attendance')
@crud_required('attendance', 'read')
def class_attendance():
    """Roster of a class for one day, with that day's status where recorded."""
    class_id = request.args.get('class_id', type=int)
    day = _parse_date(request.args.get('date'), 'date')
    if not class_id or not day:
        raise ValidationError('class_id and date required')
    rows = (db.session.query(Student, User, Attendance)
            .join(User, Student.user_id == User.id)
            .outerjoin(Attendance, and_(Attendance.student_id == Student.id,
                                        Attendance.date == day,
                                        Attendance.class_id == class_id))
            .filter(Student.class_id == class_id)
            .order_by(Student.roll_number)
            .all())
    return jsonify([{
        'id': att.id if att else None,
        'student_id': student.id,
        'class_id': class_id,
        'date': day.isoformat(),
        'status': att.status if att else None,
        'roll_number': student.roll_number,
        'student_name': user.name,
    } for student, user, att in rows])


@api_bp.route('/attendance', methods=['POST'])
@crud_required('attendance', 'create')
def mark_attendance():
    """Insert or overwrite a batch of daily records in one transaction."""
    records = _payload().get('records')
    if not isinstance(records, list):
        raise ValidationError('records array required')

    parsed = []
    for i, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise ValidationError(f'records[{i}] must be an object')
        missing = [f for f in ('student_id', 'class_id', 'date', 'status') if _blank(rec.get(f))]
        if missing:
            raise ValidationError(f"records[{i}]: required fields missing: {', '.join(missing)}")
        parsed.append((
            _optional_int(rec['student_id'], 'student_id'),
            _optional_int(rec['class_id'], 'class_id'),
            _parse_date(rec['date'], 'date'),
            _choice(rec['status'], ATTENDANCE_STATUSES, 'status'),
        ))

    try:
        for student_id, class_id, day, status in parsed:
            existing = Attendance.query.filter_by(student_id=student_id, date=day, class_id=class_id).first()
            if existing:
                existing.status = status
            else:
                db.session.add(Attendance(student_id=student_id, class_id=class_id, date=day, status=status))
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Attendance batch of %d rejected: %s", len(parsed), e.orig)
        raise ConstraintViolation(str(e.orig))
    logger.info("Recorded attendance batch of %d", len(parsed))
    return _ok()


@api_bp.route('/attendance/report')
@crud_required('attendance', 'read')
def attendance_report():
    student_id = request.args.get('student_id', type=int)
    date_from = _parse_date(request.args.get('from'), 'from')
    date_to = _parse_date(request.args.get('to'), 'to')
    q = Attendance.query.options(
        joinedload(Attendance.student).joinedload(Student.user),
        joinedload(Attendance.school_class),
    )
    if student_id:
        q = q.filter(Attendance.student_id == student_id)
    if date_from:
        q = q.filter(Attendance.date >= date_from)
    if date_to:
        q = q.filter(Attendance.date <= date_to)
    rows = (q.order_by(Attendance.date.desc(), Attendance.id.desc())
            .limit(current_app.config['ATTENDANCE_REPORT_LIMIT'])
            .all())
    return jsonify([a.to_dict() for a in rows])


# --- Grades ---
@api_bp.route('/grades')
@crud_required('grade', 'read')
def list_grades():
    student_id = request.args.get('student_id', type=int)
    subject_id = request.args.get('subject_id', type=int)
    q = Grade.query.options(joinedload(Grade.student).joinedload(Student.user), joinedload(Grade.subject))
    if student_id:
        q = q.filter(Grade.student_id == student_id)
    if subject_id:
        q = q.filter(Grade.subject_id == subject_id)
    return jsonify([g.to_dict() for g in q.order_by(Grade.date.desc(), Grade.id.desc()).all()])


@api_bp.route('/grades/<int:grade_id>')
@crud_required('grade', 'read')
def get_grade(grade_id):
    return jsonify(_get_or_404(Grade, grade_id).to_dict())


@api_bp.route('/grades', methods=['POST'])
@crud_required('grade', 'create')
def create_grade():
    data = _payload()
    _require(data, 'student_id', 'subject_id', 'exam_type')
    total = _optional_float(data.get('total_marks'), 'total_marks')
    db.session.add(Grade(
        student_id=_optional_int(data['student_id'], 'student_id'),
        subject_id=_optional_int(data['subject_id'], 'subject_id'),
        exam_type=_string(data['exam_type'], 'exam_type'),
        marks_obtained=_optional_float(data.get('marks_obtained'), 'marks_obtained'),
        total_marks=total if total is not None else 100,
        grade_letter=(_string(data.get('grade_letter'), 'grade_letter') or '').upper() or None,
        remarks=_string(data.get('remarks'), 'remarks'),
        date=_parse_date(data.get('date'), 'date') or date.today(),
    ))
    _commit('grade creation')
    return _ok()


@api_bp.route('/grades/<int:grade_id>', methods=['PUT'])
@crud_required('grade', 'update')
def update_grade(grade_id):
    grade = _get_or_404(Grade, grade_id)
    data = _payload()
    if 'exam_type' in data:
        if _blank(data['exam_type']):
            raise ValidationError('Required fields missing: exam_type')
        grade.exam_type = _string(data['exam_type'], 'exam_type')
    if 'marks_obtained' in data:
        grade.marks_obtained = _optional_float(data['marks_obtained'], 'marks_obtained')
    if 'total_marks' in data:
        total = _optional_float(data['total_marks'], 'total_marks')
        grade.total_marks = total if total is not None else 100
    if 'grade_letter' in data:
        grade.grade_letter = (_string(data['grade_letter'], 'grade_letter') or '').upper() or None
    if 'remarks' in data:
        grade.remarks = _string(data['remarks'], 'remarks')
    if 'date' in data:
        grade.date = _parse_date(data['date'], 'date') or grade.date
    _commit('grade update')
    return _ok()


@api_bp.route('/grades/<int:grade_id>', methods=['DELETE'])
@crud_required('grade', 'delete')
def delete_grade(grade_id):
    db.session.delete(_get_or_404(Grade, grade_id))
    _commit('grade deletion')
    return _ok()


# --- Fees ---
@api_bp.route('/fees')
@crud_required('fee', 'read')
def list_fees():
    student_id = request.args.get('student_id', type=int)
    status = request.args.get('status', '').strip()
    q = Fee.query.options(joinedload(Fee.student).joinedload(Student.user))
    if student_id:
        q = q.filter(Fee.student_id == student_id)
    if status:
        q = q.filter(Fee.status == status)
    return jsonify([f.to_dict() for f in q.order_by(Fee.due_date.desc(), Fee.id.desc()).all()])


@api_bp.route('/fees/<int:fee_id>')
@crud_required('fee', 'read')
def get_fee(fee_id):
    return jsonify(_get_or_404(Fee, fee_id).to_dict())


@api_bp.route('/fees', methods=['POST'])
@crud_required('fee', 'create')
def create_fee():
    data = _payload()
    _require(data, 'student_id', 'fee_type', 'amount')
    db.session.add(Fee(
        student_id=_optional_int(data['student_id'], 'student_id'),
        fee_type=_string(data['fee_type'], 'fee_type'),
        amount=_optional_float(data['amount'], 'amount'),
        due_date=_parse_date(data.get('due_date'), 'due_date'),
        status='pending',
    ))
    _commit('fee creation')
    return _ok()


@api_bp.route('/fees/<int:fee_id>', methods=['PUT'])
@crud_required('fee', 'update')
def update_fee(fee_id):
    fee = _get_or_404(Fee, fee_id)
    data = _payload()
    if 'fee_type' in data:
        if _blank(data['fee_type']):
            raise ValidationError('Required fields missing: fee_type')
        fee.fee_type = _string(data['fee_type'], 'fee_type')
    if 'amount' in data:
        amount = _optional_float(data['amount'], 'amount')
        if amount is None:
            raise ValidationError('Required fields missing: amount')
        fee.amount = amount
    if 'due_date' in data:
        fee.due_date = _parse_date(data['due_date'], 'due_date')
    if 'status' in data:
        fee.status = _choice(data['status'], FEE_STATUSES, 'status')
        if fee.status == 'paid':
            fee.paid_date = fee.paid_date or date.today()
        else:
            fee.paid_date = None
    _commit('fee update')
    return _ok()


@api_bp.route('/fees/<int:fee_id>/pay', methods=['PUT'])
@crud_required('fee', 'update')
def pay_fee(fee_id):
    fee = _get_or_404(Fee, fee_id)
    fee.status = 'paid'
    fee.paid_date = date.today()
    _commit('fee payment')
    logger.info("Fee %s marked paid", fee_id)
    return _ok()


@api_bp.route('/fees/<int:fee_id>', methods=['DELETE'])
@crud_required('fee', 'delete')
def delete_fee(fee_id):
    db.session.delete(_get_or_404(Fee, fee_id))
    _commit('fee deletion')
    return _ok()


# --- Announcements ---
def _visible_announcements(role):
    return Announcement.query.filter(Announcement.target_role.in_(['all', role]))


@api_bp.route('/announcements')
@crud_required('announcement', 'read')
def list_announcements():
    rows = (_visible_announcements(current_user()['role'])
            .options(joinedload(Announcement.author))
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .limit(current_app.config['ANNOUNCEMENT_LIST_LIMIT'])
            .all())
    return jsonify([a.to_dict() for a in rows])


@api_bp.route('/announcements/<int:announcement_id>')
@crud_required('announcement', 'read')
def get_announcement(announcement_id):
    ann = (_visible_announcements(current_user()['role'])
           .filter(Announcement.id == announcement_id)
           .first())
    if ann is None:
        raise NotFound()
    return jsonify(ann.to_dict())


@api_bp.route('/announcements', methods=['POST'])
@crud_required('announcement', 'create')
def create_announcement():
    data = _payload()
    _require(data, 'title', 'content')
    target = data.get('target_role') or 'all'
    db.session.add(Announcement(
        title=_string(data['title'], 'title'),
        content=_string(data['content'], 'content'),
        author_id=current_user()['id'],
        target_role=_choice(target, ANNOUNCEMENT_TARGETS, 'target_role'),
    ))
    _commit('announcement creation')
    return _ok()


@api_bp.route('/announcements/<int:announcement_id>', methods=['PUT'])
@crud_required('announcement', 'update')
def update_announcement(announcement_id):
    ann = _get_or_404(Announcement, announcement_id)
    data = _payload()
    for field in ('title', 'content'):
        if field in data:
            if _blank(data[field]):
                raise ValidationError(f'Required fields missing: {field}')
            setattr(ann, field, _string(data[field], field))
    if 'target_role' in data:
        ann.target_role = _choice(data['target_role'] or 'all', ANNOUNCEMENT_TARGETS, 'target_role')
    _commit('announcement update')
    return _ok()


@api_bp.route('/announcements/<int:announcement_id>', methods=['DELETE'])
@crud_required('announcement', 'delete')
def delete_announcement(announcement_id):
    db.session.delete(_get_or_404(Announcement, announcement_id))
    _commit('announcement deletion')
    return _ok()


# --- Timetable ---
_DAY_ORDER = case(
    {day: i for i, day in enumerate(WEEKDAYS[:5], start=1)},
    value=TimetableEntry.day_of_week,
    else_=6,
)


def _timetable_fields(data, entry):
    if 'class_id' in data:
        entry.class_id = _optional_int(data['class_id'], 'class_id')
    if 'subject_id' in data:
        entry.subject_id = _optional_int(data['subject_id'], 'subject_id')
    if 'day_of_week' in data:
        entry.day_of_week = _choice(data['day_of_week'], WEEKDAYS, 'day_of_week')
    if 'start_time' in data:
        entry.start_time = _parse_time(data['start_time'], 'start_time')
    if 'end_time' in data:
        entry.end_time = _parse_time(data['end_time'], 'end_time')
    if entry.start_time and entry.end_time and entry.end_time <= entry.start_time:
        raise ValidationError('end_time must be after start_time')


@api_bp.route('/timetable')
@crud_required('timetable', 'read')
def list_timetable():
    class_id = request.args.get('class_id', type=int)
    q = TimetableEntry.query.options(
        joinedload(TimetableEntry.school_class),
        joinedload(TimetableEntry.subject).joinedload(Subject.teacher),
    )
    if class_id:
        q = q.filter(TimetableEntry.class_id == class_id)
    rows = q.order_by(_DAY_ORDER, TimetableEntry.start_time, TimetableEntry.id).all()
    return jsonify([t.to_dict() for t in rows])


@api_bp.route('/timetable/<int:entry_id>')
@crud_required('timetable', 'read')
def get_timetable_entry(entry_id):
    return jsonify(_get_or_404(TimetableEntry, entry_id).to_dict())


@api_bp.route('/timetable', methods=['POST'])
@crud_required('timetable', 'create')
def create_timetable_entry():
    data = _payload()
    _require(data, 'class_id', 'subject_id', 'day_of_week', 'start_time', 'end_time')
    entry = TimetableEntry()
    _timetable_fields(data, entry)
    db.session.add(entry)
    _commit('timetable creation')
    return _ok()


@api_bp.route('/timetable/<int:entry_id>', methods=['PUT'])
@crud_required('timetable', 'update')
def update_timetable_entry(entry_id):
    entry = _get_or_404(TimetableEntry, entry_id)
    data = _payload()
    for field in ('class_id', 'subject_id', 'day_of_week', 'start_time', 'end_time'):
        if field in data and _blank(data[field]):
            raise ValidationError(f'Required fields missing: {field}')
    _timetable_fields(data, entry)
    _commit('timetable update')
    return _ok()


@api_bp.route('/timetable/<int:entry_id>', methods=['DELETE'])
@crud_required('timetable', 'delete')
def delete_timetable_entry(entry_id):
    db.session.delete(_get_or_404(TimetableEntry, entry_id))
    _commit('timetable deletion')
    return _ok()
