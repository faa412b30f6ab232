from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .base import AuditMixin
from .enums import AssignmentState, ReturnRequestState, enum_column_type


class Assignment(AuditMixin, db.Model):
    """
    An asset handed from an admin (assignor) to a staff member (assignee).

    STATE MACHINE (see assignment_service.ASSIGNMENT_TRANSITIONS):
        WaitingForAcceptance -> Accepted | Declined
        Accepted             -> WaitingForReturning   (return request created)
        WaitingForReturning  -> Returned              (return request completed)
        WaitingForReturning  -> Accepted              (return request cancelled)

    At most one assignment per asset is "active" (Accepted or
    WaitingForReturning) at any time; this is re-checked inside the request
    transaction before an assignment is created.
    """
    __tablename__ = "assignments"
    __table_args__ = (
        db.Index("ix_assignments_asset_state", "asset_id", "state"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False, index=True)
    assignor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    assigned_date = db.Column(db.Date, nullable=False, index=True)
    note = db.Column(db.String(500), nullable=True)

    state = db.Column(
        enum_column_type(AssignmentState),
        nullable=False,
        default=AssignmentState.WAITING_FOR_ACCEPTANCE,
        index=True,
    )

    asset = db.relationship("Asset", backref=db.backref("assignments", lazy=True))
    assignor = db.relationship("User", foreign_keys=[assignor_id])
    assignee = db.relationship("User", foreign_keys=[assignee_id], backref=db.backref("received_assignments", lazy=True))

    def __repr__(self) -> str:
        return f"<Assignment id={self.id} asset_id={self.asset_id} state={self.state}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "assetId": self.asset_id,
            "assetCode": self.asset.code if self.asset else None,
            "assetName": self.asset.name if self.asset else None,
            "assignorId": self.assignor_id,
            "assignedBy": self.assignor.username if self.assignor else None,
            "assigneeId": self.assignee_id,
            "assignedTo": self.assignee.username if self.assignee else None,
            "assignedDate": to_iso_date(self.assigned_date),
            "note": self.note,
            "state": self.state.value if self.state else None,
            "stateLabel": self.state.label if self.state else None,
        }


class ReturnRequest(AuditMixin, db.Model):
    """
    Request to hand an accepted asset back.

    LIFECYCLE:
        WaitingForReturning -> Completed  (admin completes; asset Available, assignment Returned)
        WaitingForReturning -> (soft-deleted)  (admin cancels; assignment back to Accepted)
    """
    __tablename__ = "return_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id"), nullable=False, index=True)
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Admin who completed the request; NULL until resolved
    acceptor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    returned_date = db.Column(db.Date, nullable=True, index=True)

    state = db.Column(
        enum_column_type(ReturnRequestState),
        nullable=False,
        default=ReturnRequestState.WAITING_FOR_RETURNING,
        index=True,
    )

    assignment = db.relationship("Assignment", backref=db.backref("return_requests", lazy=True))
    requester = db.relationship("User", foreign_keys=[requester_id])
    acceptor = db.relationship("User", foreign_keys=[acceptor_id])

    def __repr__(self) -> str:
        return f"<ReturnRequest id={self.id} assignment_id={self.assignment_id} state={self.state}>"

    def to_dict(self) -> dict:
        assignment = self.assignment
        asset = assignment.asset if assignment else None
        return {
            "id": self.id,
            "assignmentId": self.assignment_id,
            "assetCode": asset.code if asset else None,
            "assetName": asset.name if asset else None,
            "assignedDate": to_iso_date(assignment.assigned_date) if assignment else None,
            "requestedBy": self.requester.username if self.requester else None,
            "acceptedBy": self.acceptor.username if self.acceptor else None,
            "returnedDate": to_iso_date(self.returned_date),
            "state": self.state.value if self.state else None,
            "stateLabel": self.state.label if self.state else None,
        }
