# Overview: Pytest coverage for the return request lifecycle.

import pytest

from assetman.models import AssetState, AssignmentState, ReturnRequestState
from assetman.services import return_request_service
from assetman.services.query_params import ListParams
from assetman.services.session_service import CallerContext
from assetman.time_utils import today
from assetman.validation import ConflictError, FieldValidationError, NotFoundError, StateConflictError


@pytest.fixture
def accepted(make_assignment, laptop, staff_hcm, admin_hcm, db_session):
    """An accepted assignment whose asset is Assigned."""
    laptop.state = AssetState.ASSIGNED
    db_session.commit()
    return make_assignment(laptop, staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)


class TestCreateReturnRequest:

    def test_staff_requests_own_assignment(self, staff_caller, accepted, laptop):
        request_row = return_request_service.create_return_request(staff_caller, {"assignmentId": accepted.id})
        assert request_row.state == ReturnRequestState.WAITING_FOR_RETURNING
        assert request_row.requester_id == staff_caller.user_id
        assert request_row.acceptor_id is None
        assert accepted.state == AssignmentState.WAITING_FOR_RETURNING
        # Asset stays with the holder until the return is completed
        assert laptop.state == AssetState.ASSIGNED

    def test_admin_may_request_for_any_assignment_in_location(self, admin_caller, accepted):
        request_row = return_request_service.create_return_request(admin_caller, {"assignmentId": accepted.id})
        assert request_row.requester_id == admin_caller.user_id

    def test_other_staff_cannot_see_assignment(self, staff_hcm_2, accepted):
        with pytest.raises(NotFoundError) as exc:
            return_request_service.create_return_request(
                CallerContext.from_user(staff_hcm_2), {"assignmentId": accepted.id}
            )
        assert str(exc.value) == "Assignment does not exist"

    def test_admin_of_other_location_cannot_see_assignment(self, admin_hn, accepted):
        with pytest.raises(NotFoundError):
            return_request_service.create_return_request(
                CallerContext.from_user(admin_hn), {"assignmentId": accepted.id}
            )

    @pytest.mark.parametrize("state,label", [
        (AssignmentState.WAITING_FOR_ACCEPTANCE, "Waiting for acceptance"),
        (AssignmentState.DECLINED, "Declined"),
        (AssignmentState.WAITING_FOR_RETURNING, "Waiting for returning"),
        (AssignmentState.RETURNED, "Returned"),
    ])
    def test_only_accepted_assignments(self, admin_caller, make_assignment, laptop, staff_hcm, admin_hcm, state, label):
        assignment = make_assignment(laptop, staff_hcm, admin_hcm, state=state)
        with pytest.raises(ConflictError) as exc:
            return_request_service.create_return_request(admin_caller, {"assignmentId": assignment.id})
        assert str(exc.value) == f"Cannot return the asset with assignment's state is: {label}"

    def test_assignment_id_required(self, admin_caller):
        with pytest.raises(FieldValidationError) as exc:
            return_request_service.create_return_request(admin_caller, {})
        assert exc.value.fields == {"assignmentId"}


class TestCompleteReturnRequest:

    def test_completes_request_assignment_and_asset_together(self, admin_caller, staff_caller, accepted, laptop):
        request_row = return_request_service.create_return_request(staff_caller, {"assignmentId": accepted.id})

        return_request_service.complete_return_request(admin_caller, request_row.id)

        assert request_row.state == ReturnRequestState.COMPLETED
        assert request_row.acceptor_id == admin_caller.user_id
        assert request_row.returned_date == today()
        assert accepted.state == AssignmentState.RETURNED
        assert laptop.state == AssetState.AVAILABLE

    def test_cannot_complete_twice(self, admin_caller, accepted):
        request_row = return_request_service.create_return_request(admin_caller, {"assignmentId": accepted.id})
        return_request_service.complete_return_request(admin_caller, request_row.id)
        with pytest.raises(StateConflictError):
            return_request_service.complete_return_request(admin_caller, request_row.id)

    def test_other_location_admin_gets_not_found(self, admin_caller, admin_hn, accepted):
        request_row = return_request_service.create_return_request(admin_caller, {"assignmentId": accepted.id})
        with pytest.raises(NotFoundError):
            return_request_service.complete_return_request(CallerContext.from_user(admin_hn), request_row.id)
        assert request_row.state == ReturnRequestState.WAITING_FOR_RETURNING


class TestCancelReturnRequest:

    def test_cancel_restores_accepted_assignment(self, admin_caller, staff_caller, accepted, laptop):
        request_row = return_request_service.create_return_request(staff_caller, {"assignmentId": accepted.id})

        return_request_service.cancel_return_request(admin_caller, request_row.id)

        assert request_row.is_deleted is True
        assert request_row.acceptor_id == admin_caller.user_id
        assert accepted.state == AssignmentState.ACCEPTED
        assert laptop.state == AssetState.ASSIGNED

    def test_cancelled_request_disappears_and_new_one_can_be_made(self, admin_caller, accepted):
        first = return_request_service.create_return_request(admin_caller, {"assignmentId": accepted.id})
        return_request_service.cancel_return_request(admin_caller, first.id)

        with pytest.raises(NotFoundError):
            return_request_service.get_return_request(admin_caller, first.id)

        second = return_request_service.create_return_request(admin_caller, {"assignmentId": accepted.id})
        assert second.id != first.id

    def test_completed_request_cannot_be_cancelled(self, admin_caller, accepted):
        request_row = return_request_service.create_return_request(admin_caller, {"assignmentId": accepted.id})
        return_request_service.complete_return_request(admin_caller, request_row.id)
        with pytest.raises(StateConflictError):
            return_request_service.cancel_return_request(admin_caller, request_row.id)


class TestListReturnRequests:

    def test_filter_by_state_and_returned_date(self, admin_caller, make_asset, make_assignment, staff_hcm, admin_hcm):
        done_assignment = make_assignment(make_asset("A"), staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)
        open_assignment = make_assignment(make_asset("B"), staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)

        done = return_request_service.create_return_request(admin_caller, {"assignmentId": done_assignment.id})
        pending = return_request_service.create_return_request(admin_caller, {"assignmentId": open_assignment.id})
        return_request_service.complete_return_request(admin_caller, done.id)

        page = return_request_service.list_return_requests(
            admin_caller, ListParams(states={ReturnRequestState.COMPLETED}, page_size=10)
        )
        assert [r.id for r in page.items] == [done.id]

        page = return_request_service.list_return_requests(
            admin_caller, ListParams(filter_date=today(), page_size=10)
        )
        assert [r.id for r in page.items] == [done.id]

        page = return_request_service.list_return_requests(admin_caller, ListParams(page_size=10))
        assert {r.id for r in page.items} == {done.id, pending.id}

    def test_sort_by_accepted_by_with_pending_rows(self, admin_caller, make_asset, make_assignment, staff_hcm, admin_hcm):
        a = make_assignment(make_asset("A"), staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)
        b = make_assignment(make_asset("B"), staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)
        first = return_request_service.create_return_request(admin_caller, {"assignmentId": a.id})
        second = return_request_service.create_return_request(admin_caller, {"assignmentId": b.id})
        return_request_service.complete_return_request(admin_caller, second.id)

        page = return_request_service.list_return_requests(
            admin_caller, ListParams(sort_criteria=[("acceptedBy", "asc")], page_size=10)
        )
        # Pending requests have no acceptor; the outer join keeps them in the list
        assert {r.id for r in page.items} == {first.id, second.id}
