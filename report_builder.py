# report_builder.py

import calendar
import io
import logging
from decimal import Decimal, ROUND_HALF_UP
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from models import PLANNED, ACTUAL, WORKING_CODES, LEAVE_CODES
from roster_service import parse_month

log = logging.getLogger(__name__)

LEAVE_FILL = PatternFill(fill_type='solid', fgColor='FFFFFF00')
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

def days_in_month(month):
    year, month_num = map(int, month.split('-'))
    return calendar.monthrange(year, month_num)[1]

def _day_of(row, num_days):
    try:
        day = int(row['date'].split('-')[2])
    except (AttributeError, IndexError, ValueError):
        day = None
    if day is None or not 1 <= day <= num_days:
        log.warning(f"Skipping roster row with bad date {row.get('date')!r} for nurse {row.get('nurse_id')}")
        return None
    return day

def deviation_percent(deviations, planned_shifts):
    if not planned_shifts: return "0.0%"
    percent = (Decimal(deviations * 100) / Decimal(planned_shifts)).quantize(Decimal('0.1'), ROUND_HALF_UP)
    return f"{percent}%"

def build_report(nurses, planned_rows, actual_rows, month):
    """Reconcile a month of planned and actual rows into a per-nurse grid.

    ``nurses`` are dicts with ``nurse_id``, ``full_name`` and ``group_id`` in
    display order; rows are dicts with ``nurse_id``, ``date`` and
    ``shift_code``. The result has a ``rows`` list holding one dict per nurse
    and ``None`` for the blank line between two groups. Each day cell shows
    the actual code, falling back to the planned one. A day planned as work
    but actually taken as leave counts as a deviation.
    """
    num_days = days_in_month(month)
    shifts = {n['nurse_id']: {day: {PLANNED: '', ACTUAL: ''} for day in range(1, num_days + 1)} for n in nurses}
    for variant, rows in ((PLANNED, planned_rows), (ACTUAL, actual_rows)):
        for row in rows:
            if not row.get('date') or row.get('nurse_id') not in shifts: continue
            day = _day_of(row, num_days)
            if day is not None: shifts[row['nurse_id']][day][variant] = row.get('shift_code') or ''

    report_rows, current_group = [], None
    for nurse in nurses:
        if current_group is not None and nurse['group_id'] != current_group: report_rows.append(None)
        current_group = nurse['group_id']
        cells, planned_shifts, deviations = [], 0, 0
        for day in range(1, num_days + 1):
            shift = shifts[nurse['nurse_id']][day]
            display = shift[ACTUAL] or shift[PLANNED] or ''
            planned_work = shift[PLANNED] in WORKING_CODES
            if planned_work: planned_shifts += 1
            if planned_work and shift[ACTUAL] in LEAVE_CODES: deviations += 1
            cells.append({"planned": shift[PLANNED], "actual": shift[ACTUAL], "display": display, "highlight": display in LEAVE_CODES})
        report_rows.append({ "nurse_id": nurse['nurse_id'], "name": nurse['full_name'], "group_id": nurse['group_id'], "cells": cells,
                             "planned_shifts": planned_shifts, "deviations": deviations, "deviation": deviation_percent(deviations, planned_shifts) })
    return {"month": month, "days": num_days, "rows": report_rows}

def build_month_report(store, month):
    month = parse_month(month)
    nurses = [n.to_dict() for n in store.list_nurses()]
    return build_report(nurses, store.list_assignments(PLANNED, month), store.list_assignments(ACTUAL, month), month)

# --- Spreadsheet Rendering ---
def render_workbook(report):
    num_days = report['days']
    wb = Workbook()
    ws = wb.active
    ws.title = f"{report['month']} Actual Report"
    ws.append(["Staff Name"] + [str(day) for day in range(1, num_days + 1)] + ["Deviation %"])
    ws.column_dimensions['A'].width = 30
    for col in range(2, num_days + 2): ws.column_dimensions[get_column_letter(col)].width = 5
    ws.column_dimensions[get_column_letter(num_days + 2)].width = 15
    for excel_row, row in enumerate(report['rows'], start=2):
        if row is None:
            ws.append([])
            continue
        ws.append([row['name']] + [cell['display'] for cell in row['cells']] + [row['deviation']])
        for col, cell in enumerate(row['cells'], start=2):
            if cell['highlight']: ws.cell(row=excel_row, column=col).fill = LEAVE_FILL
        ws.cell(row=excel_row, column=num_days + 2).font = Font(bold=True)
    return wb

def workbook_bytes(report):
    mem_file = io.BytesIO()
    render_workbook(report).save(mem_file)
    mem_file.seek(0)
    return mem_file
