from __future__ import annotations

from ..extensions import db
from uniformdesk.time_utils import to_utc_z

# Categories that carry a per-cycle allowance
ELIGIBILITY_CATEGORIES = ("shirt", "pant", "shoe", "jacket")

DEFAULT_CYCLE_MONTHS = {"shirt": 6, "pant": 6, "shoe": 6, "jacket": 12}

class Employee(db.Model):
    """
    A person entitled to uniforms under their company's programme.

    IDENTITY:
    - `employee_id` is the stable business identifier (payroll number, badge id)
      used by bulk uploads and APIs
    - `id` is the internal storage key

    ELIGIBILITY:
    Total allowance per renewal cycle is stored per category. Consumption is
    never stored here; it is derived from order history by the eligibility
    ledger (see services/eligibility_service.py).
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    mobile = db.Column(db.String(32), nullable=True)
    designation = db.Column(db.String(128), nullable=True)
    gender = db.Column(db.String(16), nullable=True)
    location = db.Column(db.String(128), nullable=True)
    address = db.Column(db.Text, nullable=True)

    # direct, central, regional (None = no preference)
    dispatch_preference = db.Column(db.String(16), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    date_of_joining = db.Column(db.DateTime(timezone=True), nullable=True)

    # Allowance per renewal cycle
    eligibility_shirt = db.Column(db.Integer, nullable=False, default=0)
    eligibility_pant = db.Column(db.Integer, nullable=False, default=0)
    eligibility_shoe = db.Column(db.Integer, nullable=False, default=0)
    eligibility_jacket = db.Column(db.Integer, nullable=False, default=0)

    # Renewal cycle length in months
    cycle_months_shirt = db.Column(db.Integer, nullable=False, default=6)
    cycle_months_pant = db.Column(db.Integer, nullable=False, default=6)
    cycle_months_shoe = db.Column(db.Integer, nullable=False, default=6)
    cycle_months_jacket = db.Column(db.Integer, nullable=False, default=12)

    # Touched on every order commit so concurrent writers conflict on version_id
    last_order_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("employees", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def eligibility(self) -> dict[str, int]:
        return {
            category: int(getattr(self, f"eligibility_{category}") or 0)
            for category in ELIGIBILITY_CATEGORIES
        }

    @property
    def cycle_duration(self) -> dict[str, int]:
        return {
            category: int(getattr(self, f"cycle_months_{category}") or DEFAULT_CYCLE_MONTHS[category])
            for category in ELIGIBILITY_CATEGORIES
        }

    def set_eligibility(self, allowances: dict) -> None:
        for category in ELIGIBILITY_CATEGORIES:
            if category in allowances:
                setattr(self, f"eligibility_{category}", int(allowances[category] or 0))

    def set_cycle_duration(self, durations: dict) -> None:
        for category in ELIGIBILITY_CATEGORIES:
            if category in durations:
                setattr(self, f"cycle_months_{category}", int(durations[category] or DEFAULT_CYCLE_MONTHS[category]))

    def __repr__(self) -> str:
        return f"<Employee id={self.id} employee_id={self.employee_id!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "company_id": self.company.code if self.company else None,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "mobile": self.mobile,
            "designation": self.designation,
            "gender": self.gender,
            "location": self.location,
            "address": self.address,
            "dispatch_preference": self.dispatch_preference,
            "status": self.status,
            "date_of_joining": to_utc_z(self.date_of_joining),
            "eligibility": self.eligibility,
            "cycle_duration": self.cycle_duration,
            "version_id": self.version_id,
        }
