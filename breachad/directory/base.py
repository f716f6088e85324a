from typing import List, Protocol

from ..model.schemas import DirectoryMember, DirectoryUser, GroupRef


class DirectoryClient(Protocol):
    """Contract the membership resolver needs from a directory backend.

    Lookups raise GroupNotFoundError / UserNotFoundError for unknown ids and
    DirectoryError for other failures; connect() raises
    DirectoryConnectionError.
    """

    def connect(self) -> None:
        ...

    def resolve_group(self, group_id: str) -> GroupRef:
        ...

    def find_groups_by_display_name(self, name: str) -> List[GroupRef]:
        ...

    def list_all_groups(self) -> List[GroupRef]:
        ...

    def list_group_members(self, group_id: str) -> List[DirectoryMember]:
        ...

    def resolve_user(self, user_id: str) -> DirectoryUser:
        ...

    def disconnect(self) -> None:
        ...
