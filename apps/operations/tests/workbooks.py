"""
Workbook builders shared by the Excel and batch upload tests.
"""
from io import BytesIO

import openpyxl

from apps.operations import excel


def workbook_bytes(rows, sheet_name=excel.SHEET_NAME):
    """Build a workbook with the template header and ``rows`` (lists of cell values)."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet.append([header for header, _key, _width in excel.COLUMNS])
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def cells(**values):
    defaults = {
        'operationNumber': 'OP-1',
        'scheduledStartDate': '2030-01-15 08:00',
        'driverRut': '12345678-9',
        'vehiclePlateNumber': 'ABCD12',
        'operationType': 'delivery',
        'origin': 'Santiago',
        'destination': 'Valparaíso',
    }
    defaults.update(values)
    return [defaults.get(key) for _header, key, _width in excel.COLUMNS]
