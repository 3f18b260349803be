# app.py

import logging
import os
from functools import wraps
from flask import Flask, jsonify, request, send_file
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy.exc import OperationalError
from models import db, shift_catalogue, PLANNED, ACTUAL
from store import RosterStore
from roster_service import RosterError, get_status_map, get_roster_for_date, upsert_assignments
from report_builder import build_month_report, workbook_bytes, XLSX_MIMETYPE

# --- App Initialization, Config, and Extensions ---
def database_url():
    url = os.environ.get('DATABASE_URL', 'sqlite:///roster.db')
    if url.startswith('postgres://'): url = url.replace('postgres://', 'postgresql://', 1)
    return url

app = Flask(__name__)
CORS(app)
logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s:%(message)s')
app.config['SQLALCHEMY_DATABASE_URI'] = database_url()
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
db.init_app(app)
migrate = Migrate(app, db)

@app.cli.command("init-db")
def init_db():
    """Create any missing roster tables."""
    db.create_all()
    logging.info("Roster tables are ready.")

def get_store():
    return RosterStore(db.session)

def json_body():
    payload = request.get_json(silent=True)
    if payload is None: return {}
    if not isinstance(payload, dict): raise RosterError("Request body must be a JSON object")
    return payload

# --- Decorator for Error Handling ---
def api_error_handler(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try: return f(*args, **kwargs)
        except RosterError as e:
            if e.status_code >= 500: logging.error(f"Endpoint '{f.__name__}' failed: {e.message} ({e.details})")
            return jsonify(e.to_dict()), e.status_code
        except OperationalError as e:
            db.session.rollback()
            logging.error(f"Database unavailable in endpoint '{f.__name__}': {e}")
            return jsonify({"error": "Database unavailable, please retry the request."}), 503
        except Exception as e:
            db.session.rollback()
            logging.error(f"An error occurred in endpoint '{f.__name__}': {e}", exc_info=True)
            return jsonify({"error": "An unexpected server error occurred."}), 500
    return decorated_function

# --- Nurse Management ---
@app.route("/api/nurses", methods=['GET', 'POST'])
@api_error_handler
def handle_nurses():
    store = get_store()
    if request.method == 'GET': return jsonify([n.to_dict() for n in store.list_nurses()])
    payload = json_body()
    name, group = payload.get('name'), payload.get('group')
    if name is not None and not isinstance(name, str): return jsonify({"error": "Name must be text"}), 400
    name = (name or '').strip()
    if not name or group in (None, ''): return jsonify({"error": "Name and group are required"}), 400
    try: group = int(group)
    except (TypeError, ValueError): return jsonify({"error": "Group must be a whole number"}), 400
    nurse = store.add_nurse(name, group)
    logging.info(f"Added nurse {nurse.nurse_id} ({name}) to group {group}")
    return jsonify({"id": nurse.nurse_id, "name": name, "group": group}), 201

@app.route("/api/nurses/<int:nurse_id>", methods=['DELETE'])
@api_error_handler
def delete_nurse(nurse_id):
    if not get_store().delete_nurse(nurse_id): return jsonify({"error": "Nurse not found"}), 404
    logging.info(f"Deleted nurse {nurse_id} and their roster entries")
    return jsonify({"message": "Nurse deleted successfully"})

@app.route("/api/shift-codes", methods=['GET'])
def shift_codes(): return jsonify(shift_catalogue())

# --- Roster Data ---
@app.route("/api/roster-status", methods=['GET'])
@api_error_handler
def roster_status():
    return jsonify(get_status_map(get_store(), request.args.get('month')))

@app.route("/api/roster", methods=['GET'])
@api_error_handler
def roster_for_date():
    return jsonify(get_roster_for_date(get_store(), request.args.get('date')))

def _save_roster(variant):
    payload = json_body()
    date, roster = payload.get('date'), payload.get('roster')
    if not date or roster is None: return jsonify({"error": "Missing date or roster data"}), 400
    upsert_assignments(get_store(), variant, date, roster)
    return jsonify({"message": f"{variant.capitalize()} roster updated"})

@app.route("/api/roster-planned", methods=['POST'])
@api_error_handler
def save_planned_roster(): return _save_roster(PLANNED)

@app.route("/api/roster-actual", methods=['POST'])
@api_error_handler
def save_actual_roster(): return _save_roster(ACTUAL)

# --- Report Generation ---
@app.route("/api/report-actual", methods=['GET'])
@api_error_handler
def report_actual():
    report = build_month_report(get_store(), request.args.get('month'))
    filename = f"ActualRoster_{report['month']}.xlsx"
    return send_file(workbook_bytes(report), as_attachment=True, download_name=filename, mimetype=XLSX_MIMETYPE)

@app.route("/api/health", methods=['GET'])
def health(): return jsonify({"status": "ok"})

if __name__ == "__main__":
    with app.app_context(): db.create_all()
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
