"""
breachAD Data Schemas
=====================

Typed dataclasses representing directory objects, traversal output and
breach verification outcomes.

Design Decisions:
-----------------
1. MemberKind and BreachStatus enums provide type safety and easy serialization
2. MemberRecord is the primary unit of traversal output
3. BreachOutcome is the primary unit of verification output
4. AuditResult aggregates all findings for the reports and the GUI

Schema Hierarchy:
- GroupRef: a resolved directory group
- DirectoryMember / DirectoryUser: raw collaborator payloads
- MemberRecord: one node discovered during traversal
- MembershipResult: traversal accumulator (records, expanded groups, errors)
- BreachEntry / BreachOutcome: per-user verification result
- AuditSummary / AuditResult: run-level aggregates and report container
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class MemberKind(Enum):
    """Kinds of records emitted by the membership traversal."""
    USER = "User"
    GROUP = "Group"


class BreachStatus(Enum):
    """Classification of a single breach lookup."""
    CLEAN = "Clean"
    BREACHED = "Breached"
    ERROR = "Error"


# Member type tags understood by the resolver; anything else is ignored
MEMBER_TYPE_USER = "user"
MEMBER_TYPE_GROUP = "group"


@dataclass(frozen=True)
class GroupRef:
    """A directory group as resolved by the directory client.

    Attributes:
        object_id: Opaque, stable identifier (Graph object id or LDAP DN)
        display_name: Human-readable group name
    """
    object_id: str
    display_name: str

    def to_dict(self) -> dict:
        return {"object_id": self.object_id, "display_name": self.display_name}


@dataclass(frozen=True)
class DirectoryMember:
    """A direct member as returned by a group member listing."""
    object_id: str
    type_tag: str


@dataclass
class DirectoryUser:
    """User details as returned by the directory client."""
    object_id: str
    display_name: str = ""
    user_principal_name: Optional[str] = None
    mail: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    account_enabled: Optional[bool] = None


@dataclass
class MemberRecord:
    """One node discovered during a membership traversal.

    Attributes:
        kind: User or Group
        object_id: Directory identifier of the member
        display_name: Human-readable name
        email: Mail address (None for groups and users without mail)
        user_principal_name: Sign-in name (users only)
        job_title: Job title (users only)
        department: Department (users only)
        account_enabled: Whether the account is enabled (users only)
        parent_group_id: Immediate containing group id
        parent_group_name: Immediate containing group name
        nesting_level: Depth below the seed group (0 = direct member)
    """
    kind: MemberKind
    object_id: str
    display_name: str
    parent_group_id: str
    parent_group_name: str
    nesting_level: int = 0
    email: Optional[str] = None
    user_principal_name: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    account_enabled: Optional[bool] = None

    @property
    def is_user(self) -> bool:
        return self.kind == MemberKind.USER

    @property
    def is_group(self) -> bool:
        return self.kind == MemberKind.GROUP

    @classmethod
    def for_user(
        cls,
        user: DirectoryUser,
        parent: GroupRef,
        nesting_level: int
    ) -> "MemberRecord":
        """Build a User record from directory user details."""
        return cls(
            kind=MemberKind.USER,
            object_id=user.object_id,
            display_name=user.display_name or user.user_principal_name or user.object_id,
            parent_group_id=parent.object_id,
            parent_group_name=parent.display_name,
            nesting_level=nesting_level,
            email=user.mail or None,
            user_principal_name=user.user_principal_name,
            job_title=user.job_title,
            department=user.department,
            account_enabled=user.account_enabled,
        )

    @classmethod
    def for_group(
        cls,
        group: GroupRef,
        parent: GroupRef,
        nesting_level: int
    ) -> "MemberRecord":
        """Build a Group record for a nested group edge."""
        return cls(
            kind=MemberKind.GROUP,
            object_id=group.object_id,
            display_name=group.display_name,
            parent_group_id=parent.object_id,
            parent_group_name=parent.display_name,
            nesting_level=nesting_level,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "object_id": self.object_id,
            "display_name": self.display_name,
            "email": self.email,
            "user_principal_name": self.user_principal_name,
            "job_title": self.job_title,
            "department": self.department,
            "account_enabled": self.account_enabled,
            "parent_group_id": self.parent_group_id,
            "parent_group_name": self.parent_group_name,
            "nesting_level": self.nesting_level,
        }


@dataclass
class MembershipResult:
    """Accumulator for one traversal invocation.

    Attributes:
        seed_groups: Seed groups that resolved successfully
        members: MemberRecords in emission order
        groups_expanded: Group ids expanded, in expansion order
        group_errors: Group id -> error message for groups that failed
    """
    seed_groups: list = field(default_factory=list)  # List of GroupRef
    members: list = field(default_factory=list)  # List of MemberRecord
    groups_expanded: list = field(default_factory=list)
    group_errors: dict = field(default_factory=dict)

    @property
    def users(self) -> list:
        return [m for m in self.members if m.is_user]

    @property
    def nested_groups(self) -> list:
        return [m for m in self.members if m.is_group]

    def to_dict(self) -> dict:
        return {
            "seed_groups": [g.to_dict() for g in self.seed_groups],
            "members": [m.to_dict() for m in self.members],
            "groups_expanded": list(self.groups_expanded),
            "group_errors": dict(self.group_errors),
        }


@dataclass
class BreachEntry:
    """A single breach an account appeared in."""
    name: str
    date: str = "Unknown"
    data_exposed: str = "Not specified"

    def to_dict(self) -> dict:
        return {"name": self.name, "date": self.date, "data_exposed": self.data_exposed}


@dataclass
class BreachOutcome:
    """Result of verifying one user's email address.

    Attributes:
        email: Address that was checked
        display_name: User display name
        department: User department
        parent_group: Name of the group the user was found in
        status: Clean, Breached or Error
        breach_count: Number of breaches (always len(breaches))
        breaches: Breach entries with non-empty names
        error: Error message when status is Error
    """
    email: str
    display_name: str = ""
    department: Optional[str] = None
    parent_group: Optional[str] = None
    status: BreachStatus = BreachStatus.CLEAN
    breach_count: int = 0
    breaches: list = field(default_factory=list)  # List of BreachEntry
    error: Optional[str] = None

    def __post_init__(self):
        self.breach_count = len(self.breaches)

    @property
    def is_breached(self) -> bool:
        return self.status == BreachStatus.BREACHED

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "email": self.email,
            "display_name": self.display_name,
            "department": self.department,
            "parent_group": self.parent_group,
            "status": self.status.value,
            "breach_count": self.breach_count,
            "breaches": [b.to_dict() for b in self.breaches],
            "error": self.error,
        }


@dataclass
class AuditSummary:
    """Run-level aggregates derived from the member and outcome lists."""
    seed_groups: int = 0
    groups_processed: int = 0
    group_errors: int = 0
    total_members: int = 0
    unique_users: int = 0
    unique_nested_groups: int = 0
    users_with_email: int = 0
    emails_checked: int = 0
    total_breaches: int = 0
    breached_accounts: int = 0
    clean_accounts: int = 0
    error_accounts: int = 0
    verification_skipped: bool = False

    def to_dict(self) -> dict:
        return {
            "seed_groups": self.seed_groups,
            "groups_processed": self.groups_processed,
            "group_errors": self.group_errors,
            "total_members": self.total_members,
            "unique_users": self.unique_users,
            "unique_nested_groups": self.unique_nested_groups,
            "users_with_email": self.users_with_email,
            "emails_checked": self.emails_checked,
            "total_breaches": self.total_breaches,
            "breached_accounts": self.breached_accounts,
            "clean_accounts": self.clean_accounts,
            "error_accounts": self.error_accounts,
            "verification_skipped": self.verification_skipped,
        }


@dataclass
class AuditResult:
    """Complete audit result container for reports and GUI consumption.

    Attributes:
        membership: Traversal output
        outcomes: Breach outcomes in verification order
        summary: Run-level aggregates
        report_path: Path to generated JSON report
        html_report_path: Path to generated HTML report
        pdf_report_path: Path to generated PDF report
        graph_path: Path to the interactive membership graph
        csv_paths: Name -> path of CSV exports
        metadata: Additional metadata (timestamp, seeds, rate tier, ...)
    """
    membership: MembershipResult = field(default_factory=MembershipResult)
    outcomes: list = field(default_factory=list)  # List of BreachOutcome
    summary: AuditSummary = field(default_factory=AuditSummary)
    report_path: Optional[str] = None
    html_report_path: Optional[str] = None
    pdf_report_path: Optional[str] = None
    graph_path: Optional[str] = None
    csv_paths: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    @property
    def members(self) -> list:
        return self.membership.members

    @property
    def breached_outcomes(self) -> list:
        return [o for o in self.outcomes if o.is_breached]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "membership": self.membership.to_dict(),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "summary": self.summary.to_dict(),
            "report_path": self.report_path,
            "html_report_path": self.html_report_path,
            "pdf_report_path": self.pdf_report_path,
            "graph_path": self.graph_path,
            "csv_paths": self.csv_paths,
            "metadata": self.metadata,
        }
