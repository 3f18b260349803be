# models.py

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import declared_attr

db = SQLAlchemy()

# --- Shift Codes ---
SHIFT_CODES = [
    ("A", "A (Afternoon)"), ("M", "M (Morning)"), ("N", "N (Night)"), ("G", "G (General Shift)"),
    ("WO", "WO (Weekly Off)"), ("NO", "NO (Night Off)"), ("SO", "SO (Saturday Off)"),
    ("PL", "PL (Planned Leave)"), ("SL", "SL (Sick Leave)"),
    ("NH", "NH (National Holiday)"), ("PH", "PH (Festival Holiday)"),
]
WORKING_CODES = frozenset(["A", "M", "N", "G"])
LEAVE_CODES = frozenset(["WO", "NO", "SO", "PL", "SL", "NH", "PH"])
VALID_CODES = WORKING_CODES | LEAVE_CODES

PLANNED, ACTUAL = 'planned', 'actual'

def shift_catalogue():
    return [{"code": code, "full": full, "working": code in WORKING_CODES} for code, full in SHIFT_CODES]

# --- Database Models ---
class Nurse(db.Model):
    __tablename__ = 'nurses'
    nurse_id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.Text, nullable=False)
    group_id = db.Column(db.Integer, nullable=False)
    planned = db.relationship('PlannedShift', backref='nurse', cascade='all, delete-orphan')
    actual = db.relationship('ActualShift', backref='nurse', cascade='all, delete-orphan')
    def to_dict(self):
        return { "nurse_id": self.nurse_id, "full_name": self.full_name, "group_id": self.group_id }

class _ShiftAssignment:
    @declared_attr
    def nurse_id(cls):
        return db.Column(db.Integer, db.ForeignKey('nurses.nurse_id', ondelete='CASCADE'), nullable=False)
    date = db.Column(db.String(10), nullable=False)
    shift_code = db.Column(db.String(4), nullable=False, default='')
    ward = db.Column(db.Text, nullable=False, default='')
    def to_dict(self):
        return { "nurse_id": self.nurse_id, "date": self.date, "shift_code": self.shift_code or '', "ward": self.ward or '' }

class PlannedShift(_ShiftAssignment, db.Model):
    __tablename__ = 'roster_planned'
    __table_args__ = (db.UniqueConstraint('nurse_id', 'date', name='uq_planned_nurse_date'),)
    plan_id = db.Column(db.Integer, primary_key=True)

class ActualShift(_ShiftAssignment, db.Model):
    __tablename__ = 'roster_actual'
    __table_args__ = (db.UniqueConstraint('nurse_id', 'date', name='uq_actual_nurse_date'),)
    actual_id = db.Column(db.Integer, primary_key=True)

ASSIGNMENT_MODELS = {PLANNED: PlannedShift, ACTUAL: ActualShift}
