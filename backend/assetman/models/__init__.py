from .enums import Location, UserType, Gender, AssetState, AssignmentState, ReturnRequestState
from .auth import User, SessionToken
from .assets import Category, Asset
from .assignments import Assignment, ReturnRequest

__all__ = [
    'Location', 'UserType', 'Gender', 'AssetState', 'AssignmentState', 'ReturnRequestState',
    'User', 'SessionToken',
    'Category', 'Asset',
    'Assignment', 'ReturnRequest',
]
