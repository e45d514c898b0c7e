import enum

class StaffRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    cashier = "cashier"

class PulloutStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

class PulloutKind(str, enum.Enum):
    removal = "removal"
    addition = "addition"

class Permission(str, enum.Enum):
    view = "pullouts.view"
    create = "pullouts.create"
    edit = "pullouts.edit"
    delete = "pullouts.delete"
    approve = "pullouts.approve"

class AuditAction(str, enum.Enum):
    create = "PULLOUT_CREATE"
    edit = "PULLOUT_EDIT"
    approve = "PULLOUT_APPROVE"
    reject = "PULLOUT_REJECT"
    delete = "PULLOUT_DELETE"
