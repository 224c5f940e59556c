from datetime import date

from app.models.debt import StudentDebtSession
from app.models.makeup import MakeupEnrollment
from app.services.capacity import available_seats, seat_counts


def test_group_session_counts_roster_makeup_and_debt(campus, db):
    g1, g2 = campus.group("G1"), campus.group("G2")
    for i in range(3):
        campus.student(f"G2-{i}", g2)
    visitor = campus.student("S001", g1)
    debtor = campus.student("S002", g1)

    target = campus.session("dw", g2, capacity=10)
    first = campus.occurrence(target, date(2024, 3, 11))
    second = campus.occurrence(target, date(2024, 3, 18))

    own = campus.session("dw", g1)
    for n, occ_date in enumerate((date(2024, 3, 3), date(2024, 3, 10))):
        attendance = campus.absence(visitor, campus.occurrence(own, occ_date))
        campus.add(
            MakeupEnrollment(
                student_id=visitor.matricule,
                occurrence_id=(first, second)[n].id,
                attendance_id=attendance.id,
            )
        )
    campus.add(StudentDebtSession(student_id=debtor.matricule, session_id=target.id))
    db.commit()

    seats = seat_counts(db, [target.id])[target.id]
    # o mesmo aluno em duas ocorrências conta uma vez
    assert (seats.capacity, seats.roster, seats.makeup, seats.debt) == (10, 3, 1, 1)
    assert seats.available == 5
    assert available_seats(db, target.id) == 5


def test_section_session_counts_every_group(campus, db):
    g1, g2 = campus.group("G1"), campus.group("G2")
    campus.student("S001", g1)
    campus.student("S002", g2)
    campus.student("S003", g2)

    lecture = campus.session("cours", None, capacity=120)
    db.commit()

    assert seat_counts(db, [lecture.id])[lecture.id].roster == 3
    assert available_seats(db, lecture.id) == 117


def test_full_room_and_unknown_session(campus, db):
    g2 = campus.group("G2")
    campus.student("S001", g2)
    full = campus.session("dw", g2, capacity=1)
    db.commit()

    assert available_seats(db, full.id) == 0
    assert available_seats(db, 9999) == 0
    assert seat_counts(db, []) == {}
