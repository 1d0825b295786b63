import threading

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from database import Base
from modules.certificates.models import (
    Certificate, CertificateStatus, DepartmentRegistry, DueStatus, SignatureRecord, SignatureStatus
)
from modules.certificates.services.certificate_service import CertificateService, generate_certificate_number
from modules.certificates.services.errors import (
    AlreadyResolvedError, AuthorizationError, MissingSignatureError, NotFoundError,
    PendingDuesError, PreconditionError
)
from modules.notifications.models.notification import Notification

from factories import (
    actor_for, admin_actor, create_dummy_due, create_dummy_student,
    department_admin_actor, hod_actor, principal_actor
)

REGISTRY = DepartmentRegistry(["LIBRARY", "HOD"])


def make_service(session, registry=REGISTRY):
    return CertificateService(session, registry=registry)


def student_actor(session):
    student = create_dummy_student(session)
    return student, actor_for(student.user)


# --- Scenarios ---

def test_scenario_a_full_approval(session):
    service = make_service(session)
    student, me = student_actor(session)
    librarian = department_admin_actor(session, "LIBRARY")
    hod = hod_actor(session)
    principal = principal_actor(session)

    certificate = service.request_certificate(me)
    assert certificate.status == CertificateStatus.PENDING
    assert [(s.department, s.status) for s in certificate.signatures] == [
        ("LIBRARY", SignatureStatus.PENDING), ("HOD", SignatureStatus.PENDING)
    ]

    certificate = service.sign_department(librarian, certificate.id, "LIBRARY", "No books pending")
    assert certificate.status == CertificateStatus.PARTIAL

    certificate = service.sign_department(hod, certificate.id, "HOD")
    assert certificate.status == CertificateStatus.ALLSIGNED

    certificate = service.sign_principal(principal, certificate.id)
    assert certificate.status == CertificateStatus.COMPLETE
    assert certificate.principal_signed is True
    assert certificate.issue_date is not None


def test_scenario_b_rejection_dominates(session):
    service = make_service(session)
    student, me = student_actor(session)
    librarian = department_admin_actor(session, "LIBRARY")
    hod = hod_actor(session)
    principal = principal_actor(session)

    certificate = service.request_certificate(me)
    certificate = service.reject_department(librarian, certificate.id, "LIBRARY", "Lost book")
    assert certificate.status == CertificateStatus.REJECTED

    certificate = service.sign_department(hod, certificate.id, "HOD")
    assert certificate.signatures[1].status == SignatureStatus.SIGNED
    assert certificate.status == CertificateStatus.REJECTED

    with pytest.raises(PreconditionError):
        service.sign_principal(principal, certificate.id)
    assert session.get(Certificate, certificate.id).principal_signed is False


def test_scenario_c_pending_due_blocks_request(session):
    service = make_service(session)
    student, me = student_actor(session)
    create_dummy_due(session, student, DueStatus.PENDING)

    with pytest.raises(PendingDuesError):
        service.request_certificate(me)
    assert session.query(Certificate).count() == 0
    assert session.query(SignatureRecord).count() == 0


def test_scenario_d_racing_signers_on_same_department(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with Session() as setup:
        student = create_dummy_student(setup)
        first = department_admin_actor(setup, "LIBRARY")
        second = department_admin_actor(setup, "LIBRARY")
        certificate_id = make_service(setup).request_certificate(actor_for(student.user)).id

    with Session() as session_a, Session() as session_b:
        # Both signers load the certificate while the record is still PENDING
        loaded = session_b.get(Certificate, certificate_id)
        assert loaded.signatures[0].status == SignatureStatus.PENDING

        make_service(session_a).sign_department(first, certificate_id, "LIBRARY")
        with pytest.raises(AlreadyResolvedError):
            make_service(session_b).sign_department(second, certificate_id, "LIBRARY")

    with Session() as check:
        record = check.query(SignatureRecord).filter_by(certificate_id=certificate_id, department="LIBRARY").one()
        assert record.signed_by_user_id == first.user_id
        assert check.get(Certificate, certificate_id).status == CertificateStatus.PARTIAL
    engine.dispose()


def test_scenario_d_concurrent_signers_only_one_wins(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )

    # Let every transaction take the write lock up front, so the loser waits instead of failing
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with Session() as setup:
        student = create_dummy_student(setup)
        signers = [department_admin_actor(setup, "LIBRARY"), department_admin_actor(setup, "LIBRARY")]
        certificate_id = make_service(setup).request_certificate(actor_for(student.user)).id

    barrier = threading.Barrier(len(signers))
    outcomes = {}

    def sign(actor):
        with Session() as session:
            service = make_service(session)
            barrier.wait()
            try:
                service.sign_department(actor, certificate_id, "LIBRARY")
                outcomes[actor.user_id] = "signed"
            except AlreadyResolvedError:
                outcomes[actor.user_id] = "already resolved"

    threads = [threading.Thread(target=sign, args=(actor,)) for actor in signers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes.values()) == ["already resolved", "signed"]
    winner = next(user_id for user_id, outcome in outcomes.items() if outcome == "signed")
    with Session() as check:
        record = check.query(SignatureRecord).filter_by(certificate_id=certificate_id, department="LIBRARY").one()
        assert record.status == SignatureStatus.SIGNED
        assert record.signed_by_user_id == winner
        assert check.get(Certificate, certificate_id).status == CertificateStatus.PARTIAL
    engine.dispose()


def test_department_writes_lock_the_certificate_row(session, monkeypatch):
    service = make_service(session, DepartmentRegistry(["LIBRARY", "HOD", "ACCOUNTS"]))
    student, me = student_actor(session)
    admin = admin_actor(session)
    certificate_id = service.request_certificate(me).id

    locking = []
    original_get = session.get

    def recording_get(entity, ident, **kwargs):
        if entity is Certificate:
            locking.append(kwargs.get("with_for_update", False))
        return original_get(entity, ident, **kwargs)

    monkeypatch.setattr(session, "get", recording_get)

    for write in (
        lambda: service.sign_department(admin, certificate_id, "LIBRARY"),
        lambda: service.reject_department(admin, certificate_id, "HOD"),
        lambda: service.delete_certificate(admin, certificate_id),
    ):
        locking.clear()
        write()
        assert locking and locking[0] is True


# --- Gate and seeding ---

def test_paid_but_unapproved_due_still_blocks(session):
    service = make_service(session)
    student, me = student_actor(session)
    create_dummy_due(session, student, DueStatus.APPROVED)
    create_dummy_due(session, student, DueStatus.PAID)

    assert service.check_eligibility(me, student.id) is False
    with pytest.raises(PendingDuesError):
        service.request_certificate(me)


def test_approved_dues_pass_the_gate(session):
    service = make_service(session)
    student, me = student_actor(session)
    create_dummy_due(session, student, DueStatus.APPROVED)

    assert service.check_eligibility(me, student.id) is True
    assert service.request_certificate(me).status == CertificateStatus.PENDING


def test_check_eligibility_unknown_student(session):
    with pytest.raises(NotFoundError):
        make_service(session).check_eligibility(admin_actor(session), 999)


def test_check_eligibility_is_limited_to_the_student_and_staff(session):
    service = make_service(session)
    student, me = student_actor(session)
    other, other_actor = student_actor(session)

    assert service.check_eligibility(me, student.id) is True
    assert service.check_eligibility(department_admin_actor(session, "LIBRARY"), student.id) is True
    with pytest.raises(AuthorizationError):
        service.check_eligibility(other_actor, student.id)


def test_list_certificates_for_student(session):
    service = make_service(session)
    student, me = student_actor(session)
    other, other_actor = student_actor(session)
    first = service.request_certificate(me)
    second = service.request_certificate(me)
    service.request_certificate(other_actor)

    assert [c.id for c in service.list_certificates_for_student(me, student.id)] == [second.id, first.id]
    assert len(service.list_certificates_for_student(hod_actor(session), student.id)) == 2
    with pytest.raises(AuthorizationError):
        service.list_certificates_for_student(other_actor, student.id)
    with pytest.raises(NotFoundError):
        service.list_certificates_for_student(admin_actor(session), 999)


def test_students_with_cleared_dues(session):
    service = make_service(session)
    cleared, cleared_actor = student_actor(session)
    create_dummy_due(session, cleared, DueStatus.APPROVED)
    no_dues, _ = student_actor(session)
    blocked, _ = student_actor(session)
    create_dummy_due(session, blocked, DueStatus.APPROVED)
    create_dummy_due(session, blocked, DueStatus.PAID)

    students = service.students_with_cleared_dues(principal_actor(session))
    assert {s.id for s in students} == {cleared.id, no_dues.id}
    with pytest.raises(AuthorizationError):
        service.students_with_cleared_dues(cleared_actor)


def test_empty_registry_certificate_goes_straight_to_principal(session):
    registry = DepartmentRegistry([])
    service = make_service(session, registry)
    student, me = student_actor(session)

    assert service.registry is registry
    certificate = service.request_certificate(me)
    assert certificate.status == CertificateStatus.ALLSIGNED
    assert certificate.signatures == []

    certificate = service.sign_principal(principal_actor(session), certificate.id)
    assert certificate.status == CertificateStatus.COMPLETE


def test_seeding_matches_registry(session):
    registry = DepartmentRegistry()
    service = make_service(session, registry)
    student, me = student_actor(session)

    certificate = service.request_certificate(me)
    departments = [s.department for s in certificate.signatures]
    assert departments == registry.list_required_departments()
    assert len(set(departments)) == len(registry) == 10
    assert all(s.status == SignatureStatus.PENDING for s in certificate.signatures)


def test_staff_requests_on_behalf_by_roll_number(session):
    service = make_service(session)
    student = create_dummy_student(session, roll_number="0101CS999")
    hod = hod_actor(session)

    certificate = service.request_certificate(hod, "0101CS999")
    assert certificate.student_id == student.id
    assert certificate.student_roll_number == "0101CS999"


def test_student_cannot_request_for_someone_else(session):
    service = make_service(session)
    student, me = student_actor(session)
    create_dummy_student(session, roll_number="OTHER-1")

    with pytest.raises(AuthorizationError):
        service.request_certificate(me, "OTHER-1")
    assert session.query(Certificate).count() == 0


def test_unknown_roll_number(session):
    with pytest.raises(NotFoundError):
        make_service(session).request_certificate(admin_actor(session), "NOPE")


def test_certificate_numbers_are_unique(session):
    service = make_service(session)
    student, me = student_actor(session)
    first = service.request_certificate(me)
    second = service.request_certificate(me)
    assert first.certificate_number != second.certificate_number
    assert first.certificate_number.startswith("NDC-")


def test_generate_certificate_number_prefix():
    assert generate_certificate_number("XYZ").startswith("XYZ-")


# --- Signing rules ---

def test_department_admin_cannot_sign_other_department(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    transport = department_admin_actor(session, "TRANSPORT")

    with pytest.raises(AuthorizationError):
        service.sign_department(transport, certificate.id, "LIBRARY")
    assert session.get(Certificate, certificate.id).signatures[0].status == SignatureStatus.PENDING


def test_second_sign_fails_and_leaves_record_unchanged(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    librarian = department_admin_actor(session, "LIBRARY")
    admin = admin_actor(session)

    service.sign_department(librarian, certificate.id, "LIBRARY", "ok")
    with pytest.raises(AlreadyResolvedError):
        service.sign_department(admin, certificate.id, "LIBRARY", "again")
    with pytest.raises(AlreadyResolvedError):
        service.reject_department(admin, certificate.id, "LIBRARY", "changed my mind")

    record = session.query(SignatureRecord).filter_by(certificate_id=certificate.id, department="LIBRARY").one()
    assert record.status == SignatureStatus.SIGNED
    assert record.signed_by_user_id == librarian.user_id
    assert record.comments == "ok"


def test_sign_unknown_certificate(session):
    with pytest.raises(NotFoundError):
        make_service(session).sign_department(admin_actor(session), 404, "LIBRARY")


def test_e_signature_is_copied_onto_record(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    librarian = department_admin_actor(session, "LIBRARY", e_signature=b"\x89PNG-librarian")

    certificate = service.sign_department(librarian, certificate.id, "LIBRARY", use_e_signature=True)
    assert certificate.signatures[0].e_signature == b"\x89PNG-librarian"


def test_missing_e_signature_leaves_certificate_untouched(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    librarian = department_admin_actor(session, "LIBRARY")

    with pytest.raises(MissingSignatureError):
        service.sign_department(librarian, certificate.id, "LIBRARY", use_e_signature=True)
    certificate = session.get(Certificate, certificate.id)
    assert certificate.status == CertificateStatus.PENDING
    assert certificate.signatures[0].status == SignatureStatus.PENDING


def test_principal_needs_e_signature_when_requested(session):
    service = make_service(session, DepartmentRegistry([]))
    student, me = student_actor(session)
    certificate = service.request_certificate(me)

    with pytest.raises(MissingSignatureError):
        service.sign_principal(principal_actor(session), certificate.id, use_e_signature=True)

    certificate = service.sign_principal(principal_actor(session, e_signature=b"ink"), certificate.id,
                                         use_e_signature=True)
    assert certificate.principal_e_signature == b"ink"


def test_principal_gating_in_every_reachable_state(session):
    service = make_service(session)
    student, me = student_actor(session)
    admin = admin_actor(session)
    principal = principal_actor(session)
    certificate = service.request_certificate(me)

    with pytest.raises(PreconditionError):
        service.sign_principal(principal, certificate.id)  # PENDING
    service.sign_department(admin, certificate.id, "LIBRARY")
    with pytest.raises(PreconditionError):
        service.sign_principal(principal, certificate.id)  # PARTIAL
    service.sign_department(admin, certificate.id, "HOD")
    service.sign_principal(principal, certificate.id)
    with pytest.raises(PreconditionError):
        service.sign_principal(admin, certificate.id)  # COMPLETE

    certificate = session.get(Certificate, certificate.id)
    assert certificate.principal_signed_by == principal.name


def test_hod_cannot_sign_as_principal(session):
    service = make_service(session, DepartmentRegistry([]))
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    with pytest.raises(AuthorizationError):
        service.sign_principal(hod_actor(session), certificate.id)


# --- Signature requests, notifications, reads, delete ---

def test_request_signature_notifies_department_admins(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    department_admin_actor(session, "LIBRARY")
    department_admin_actor(session, "LIBRARY")
    department_admin_actor(session, "TRANSPORT")

    sent = service.request_signature(hod_actor(session), certificate.id, "LIBRARY")
    assert len(sent) == 2
    assert all("Library" in n.message for n in sent)


def test_request_signature_rules(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    hod = hod_actor(session)

    with pytest.raises(AuthorizationError):
        service.request_signature(hod, certificate.id, "HOD")
    with pytest.raises(AuthorizationError):
        service.request_signature(admin_actor(session), certificate.id, "LIBRARY")
    with pytest.raises(NotFoundError):
        service.request_signature(hod, certificate.id, "HOSTEL")

    service.sign_department(department_admin_actor(session, "LIBRARY"), certificate.id, "LIBRARY")
    with pytest.raises(AlreadyResolvedError):
        service.request_signature(hod, certificate.id, "LIBRARY")


def test_student_is_notified_of_status_changes(session):
    service = make_service(session)
    student, me = student_actor(session)
    admin = admin_actor(session)
    certificate = service.request_certificate(me)
    service.sign_department(admin, certificate.id, "LIBRARY")
    service.sign_department(admin, certificate.id, "HOD")
    service.sign_principal(admin, certificate.id)

    messages = [n.message for n in session.query(Notification).filter_by(user_id=student.user_id)
                .order_by(Notification.id)]
    assert len(messages) == 4
    assert "Pending" in messages[0]
    assert "Complete" in messages[-1]


def test_get_certificate_visibility(session):
    service = make_service(session)
    student, me = student_actor(session)
    other, other_actor = student_actor(session)
    certificate = service.request_certificate(me)

    assert service.get_certificate(me, certificate.id).id == certificate.id
    assert service.get_certificate(principal_actor(session), certificate.id).id == certificate.id
    with pytest.raises(AuthorizationError):
        service.get_certificate(other_actor, certificate.id)


def test_list_certificates_scoped_to_student(session):
    service = make_service(session)
    student, me = student_actor(session)
    other, other_actor = student_actor(session)
    mine = service.request_certificate(me)
    service.request_certificate(other_actor)

    assert [c.id for c in service.list_certificates(me)] == [mine.id]
    assert len(service.list_certificates(admin_actor(session))) == 2


def test_delete_cascades_to_signature_records(session):
    service = make_service(session)
    student, me = student_actor(session)
    certificate = service.request_certificate(me)
    service.sign_department(admin_actor(session), certificate.id, "LIBRARY")
    certificate_id = certificate.id

    with pytest.raises(AuthorizationError):
        service.delete_certificate(principal_actor(session), certificate_id)

    service.delete_certificate(admin_actor(session), certificate_id)
    assert session.get(Certificate, certificate_id) is None
    assert session.query(SignatureRecord).filter_by(certificate_id=certificate_id).count() == 0
    assert session.query(Notification).filter_by(certificate_id=certificate_id).count() == 0

    with pytest.raises(NotFoundError):
        service.delete_certificate(admin_actor(session), certificate_id)


def test_download_requires_complete(session):
    service = make_service(session, DepartmentRegistry(["LIBRARY"]))
    student, me = student_actor(session)
    admin = admin_actor(session)
    certificate = service.request_certificate(me)

    with pytest.raises(PreconditionError):
        service.download_certificate(me, certificate.id)

    service.sign_department(admin, certificate.id, "LIBRARY")
    service.sign_principal(admin, certificate.id)
    assert service.download_certificate(me, certificate.id).startswith(b"%PDF")
