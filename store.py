# store.py

from contextlib import contextmanager
from sqlalchemy import and_
from sqlalchemy.dialects import postgresql, sqlite
from models import Nurse, PlannedShift, ActualShift, ASSIGNMENT_MODELS

# INSERT ... ON CONFLICT DO UPDATE, keyed by the (nurse_id, date) unique constraint
CONFLICT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}

class RosterStore:
    """Data access for nurses and their planned/actual shift rows.

    Wraps one SQLAlchemy session. Writes are staged on the session and only
    made durable inside ``transaction()``.
    """

    def __init__(self, session):
        self.session = session

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # --- Nurses ---
    def list_nurses(self):
        return self.session.query(Nurse).order_by(Nurse.group_id, Nurse.full_name).all()

    def get_nurse(self, nurse_id):
        return self.session.get(Nurse, nurse_id)

    def add_nurse(self, full_name, group_id):
        nurse = Nurse(full_name=full_name, group_id=group_id)
        with self.transaction():
            self.session.add(nurse)
        return nurse

    def delete_nurse(self, nurse_id):
        nurse = self.get_nurse(nurse_id)
        if nurse is None: return False
        with self.transaction():
            self.session.delete(nurse)
        return True

    # --- Assignments ---
    def _month_query(self, variant, month):
        model = ASSIGNMENT_MODELS[variant]
        return model, self.session.query(model).filter(model.date.like(f"{month}-%"))

    def list_assignments(self, variant, month):
        _, query = self._month_query(variant, month)
        return [row.to_dict() for row in query.all()]

    def distinct_dates(self, variant, month):
        model, query = self._month_query(variant, month)
        rows = query.filter(model.shift_code != '').with_entities(model.date).distinct().all()
        return [r.date for r in rows]

    def upsert(self, variant, nurse_id, date, shift_code, ward):
        model = ASSIGNMENT_MODELS[variant]
        insert = CONFLICT_INSERTS[self.session.get_bind(model).dialect.name]
        stmt = insert(model).values(nurse_id=nurse_id, date=date, shift_code=shift_code, ward=ward)
        stmt = stmt.on_conflict_do_update(index_elements=['nurse_id', 'date'],
                                          set_={"shift_code": stmt.excluded.shift_code, "ward": stmt.excluded.ward})
        self.session.execute(stmt)

    def roster_rows(self, date):
        p, a = PlannedShift, ActualShift
        query = (self.session.query(Nurse.nurse_id, Nurse.full_name, Nurse.group_id,
                                    p.shift_code.label('planned_shift'), p.ward.label('planned_ward'),
                                    a.shift_code.label('actual_shift'), a.ward.label('actual_ward'))
                 .outerjoin(p, and_(p.nurse_id == Nurse.nurse_id, p.date == date))
                 .outerjoin(a, and_(a.nurse_id == Nurse.nurse_id, a.date == date))
                 .order_by(Nurse.group_id, Nurse.full_name))
        return [dict(r._mapping) for r in query.all()]
