import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from gradebook.models.mark_entry import MarkEntry
from gradebook.models.student import Student
from gradebook.routes.student_routes import (
    SORT_RECENT,
    SORT_ROSTER,
    StudentRequest,
    create_student,
    delete_student,
    get_student,
    list_students,
    parse_record_id,
    update_student,
)


def _student_request(roll_number: str = '10A-01', **overrides) -> StudentRequest:
    payload = {
        'fullName': 'Asha K',
        'rollNumber': roll_number,
        'class': '10',
        'section': 'A',
        'address': '12 Lake Road',
    }
    payload.update(overrides)
    return StudentRequest(**payload)


def test_student_request_trims_fields() -> None:
    request = _student_request(fullName='  Asha K  ', rollNumber=' 10A-01 ')

    assert request.full_name == 'Asha K'
    assert request.roll_number == '10A-01'
    assert request.class_name == '10'


@pytest.mark.parametrize('field', ['fullName', 'rollNumber', 'class', 'section', 'address'])
def test_student_request_rejects_blank_fields(field: str) -> None:
    with pytest.raises(ValidationError):
        _student_request(**{field: '   '})


def test_student_request_rejects_missing_field() -> None:
    with pytest.raises(ValidationError):
        StudentRequest(fullName='Asha K', rollNumber='10A-01', section='A', address='12 Lake Road')


@pytest.mark.parametrize('value', ['abc', '', '0', '-4', '1.5'])
def test_parse_record_id_treats_malformed_ids_as_not_found(value: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        parse_record_id(value, 'Student not found')

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Student not found'


def test_create_student_returns_stored_record(gradebook_db, admin_user) -> None:
    student = create_student(data=_student_request(), db=gradebook_db, current_user=admin_user)

    assert student.id is not None
    assert student.full_name == 'Asha K'
    assert student.roll_number == '10A-01'
    assert student.created_at is not None


def test_create_student_rejects_duplicate_roll_number(gradebook_db, admin_user) -> None:
    create_student(data=_student_request(), db=gradebook_db, current_user=admin_user)

    with pytest.raises(HTTPException) as exception_info:
        create_student(
            data=_student_request(fullName='Someone Else'),
            db=gradebook_db,
            current_user=admin_user,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Roll number already exists'
    assert gradebook_db.query(Student).count() == 1


def test_create_student_maps_unique_index_violation_to_conflict(
    gradebook_db,
    admin_user,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    create_student(data=_student_request(), db=gradebook_db, current_user=admin_user)
    # Simulate a concurrent insert that slipped past the existence check.
    monkeypatch.setattr(
        'gradebook.routes.student_routes.ensure_roll_number_available',
        lambda db, roll_number, exclude_id=None: None,
    )

    with pytest.raises(HTTPException) as exception_info:
        create_student(data=_student_request(), db=gradebook_db, current_user=admin_user)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Roll number already exists'
    assert gradebook_db.query(Student).count() == 1


def test_list_students_orders_by_recency(gradebook_db, admin_user, make_student) -> None:
    first = make_student('10A-02')
    second = make_student('10A-01')

    students = list_students(sort=SORT_RECENT, db=gradebook_db, current_user=admin_user)

    assert [student.id for student in students] == [second.id, first.id]


def test_list_students_roster_order(gradebook_db, teacher_user, make_student) -> None:
    make_student('9B-02', class_name='9', section='B')
    make_student('10A-02', class_name='10', section='A')
    make_student('9A-01', class_name='9', section='A')
    make_student('10A-01', class_name='10', section='A')

    students = list_students(sort=SORT_ROSTER, db=gradebook_db, current_user=teacher_user)

    assert [student.roll_number for student in students] == ['10A-01', '10A-02', '9A-01', '9B-02']


def test_get_student_returns_not_found_when_missing(gradebook_db, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_student(student_id='999', db=gradebook_db, current_user=admin_user)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Student not found'


def test_update_student_replaces_all_fields(gradebook_db, admin_user, make_student) -> None:
    student = make_student('10A-01')

    result = update_student(
        student_id=str(student.id),
        data=_student_request(
            roll_number='10B-07',
            fullName='Asha Kumar',
            section='B',
            address='4 Hill Street',
        ),
        db=gradebook_db,
        current_user=admin_user,
    )

    assert result.message == 'Student updated successfully'
    assert result.student.full_name == 'Asha Kumar'
    assert result.student.roll_number == '10B-07'
    assert result.student.section == 'B'
    assert result.student.address == '4 Hill Street'


def test_update_student_keeps_own_roll_number(gradebook_db, admin_user, make_student) -> None:
    student = make_student('10A-01')

    result = update_student(
        student_id=str(student.id),
        data=_student_request(roll_number='10A-01', fullName='Asha Kumar'),
        db=gradebook_db,
        current_user=admin_user,
    )

    assert result.student.roll_number == '10A-01'
    assert result.student.full_name == 'Asha Kumar'


def test_update_student_rejects_roll_number_of_other_student(gradebook_db, admin_user, make_student) -> None:
    make_student('10A-01')
    other = make_student('10A-02')

    with pytest.raises(HTTPException) as exception_info:
        update_student(
            student_id=str(other.id),
            data=_student_request(roll_number='10A-01'),
            db=gradebook_db,
            current_user=admin_user,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Roll number already exists'


def test_update_student_returns_not_found_for_malformed_id(gradebook_db, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_student(student_id='not-an-id', data=_student_request(), db=gradebook_db, current_user=admin_user)

    assert exception_info.value.status_code == 404


def test_delete_student_keeps_mark_entries(gradebook_db, admin_user, make_student) -> None:
    student_id = make_student('10A-01').id
    gradebook_db.add(MarkEntry(student_id=student_id, subject='Math', marks=45, total_marks=50))
    gradebook_db.commit()

    result = delete_student(student_id=str(student_id), db=gradebook_db, current_user=admin_user)

    assert result.message == 'Student deleted successfully'
    assert gradebook_db.get(Student, student_id) is None
    assert gradebook_db.query(MarkEntry).filter(MarkEntry.student_id == student_id).count() == 1


def test_delete_student_returns_not_found_when_missing(gradebook_db, admin_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        delete_student(student_id='42', db=gradebook_db, current_user=admin_user)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Student not found'
