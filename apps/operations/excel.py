"""
Operations workbook: template generation and parsing.

The "Operaciones" sheet carries one operation per row under a fixed
15-column header. Parsing only checks the shape of each cell (presence,
length, dates, numbers); references are resolved later by the batch import.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, List, Optional
from zipfile import BadZipFile

import openpyxl
from django.utils.dateparse import parse_date, parse_datetime
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils.exceptions import InvalidFileException

from apps.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

SHEET_NAME = 'Operaciones'
INSTRUCTIONS_SHEET_NAME = 'Instrucciones'
DATE_FORMAT = '%Y-%m-%d %H:%M'

# (header, row key, column width)
COLUMNS = [
    ('N° Operación (*)', 'operationNumber', 20),
    ('Fecha/Hora Inicio (*)', 'scheduledStartDate', 20),
    ('Fecha/Hora Fin', 'scheduledEndDate', 20),
    ('Cliente', 'clientName', 30),
    ('Proveedor', 'providerName', 30),
    ('Tramo/Ruta', 'routeName', 30),
    ('RUT Chofer (*)', 'driverRut', 15),
    ('Patente Camión (*)', 'vehiclePlateNumber', 15),
    ('Tipo Operación (*)', 'operationType', 20),
    ('Origen (*)', 'origin', 40),
    ('Destino (*)', 'destination', 40),
    ('Distancia (km)', 'distance', 15),
    ('Descripción Carga', 'cargoDescription', 40),
    ('Peso Carga (kg)', 'cargoWeight', 15),
    ('Observaciones', 'notes', 50),
]

OPTIONAL_TEXT_KEYS = ('scheduledEndDate', 'clientName', 'providerName', 'routeName', 'cargoDescription', 'notes')
NUMERIC_KEYS = ('distance', 'cargoWeight')

EXAMPLE_ROWS = [
    {
        'operationNumber': 'OP-001',
        'scheduledStartDate': '2025-11-20 08:00',
        'scheduledEndDate': '2025-11-20 18:00',
        'clientName': 'Minera del Norte',
        'providerName': '',
        'routeName': 'Santiago - Calama',
        'driverRut': '12.345.678-9',
        'vehiclePlateNumber': 'ABCD12',
        'operationType': 'delivery',
        'origin': 'Santiago, Región Metropolitana',
        'destination': 'Calama, Región de Antofagasta',
        'distance': 1650,
        'cargoDescription': 'Equipos mineros',
        'cargoWeight': 15000,
        'notes': 'Carga frágil, manejar con cuidado',
    },
    {
        'operationNumber': 'OP-002',
        'scheduledStartDate': '2025-11-21 09:00',
        'scheduledEndDate': '2025-11-21 15:00',
        'clientName': '',
        'providerName': 'Transportes del Sur',
        'routeName': '',
        'driverRut': '98.765.432-1',
        'vehiclePlateNumber': 'EFGH34',
        'operationType': 'pickup',
        'origin': 'Valparaíso, Región de Valparaíso',
        'destination': 'Santiago, Región Metropolitana',
        'distance': 120,
        'cargoDescription': 'Contenedores',
        'cargoWeight': 8000,
        'notes': '',
    },
]

# (text, is_heading)
INSTRUCTIONS = [
    ('INSTRUCCIONES PARA CARGA MASIVA DE OPERACIONES', True),
    ('', False),
    ('CAMPOS OBLIGATORIOS (marcados con *):', True),
    ('  • N° Operación: Número único de la operación (máx. 50 caracteres)', False),
    ('  • Fecha/Hora Inicio: Fecha y hora programada de inicio (formato: YYYY-MM-DD HH:MM)', False),
    ('  • RUT Chofer: RUT del chofer asignado (formato: 12.345.678-9)', False),
    ('  • Patente Camión: Patente del vehículo asignado', False),
    ('  • Tipo Operación: Tipo de operación (delivery, pickup, transfer, etc.)', False),
    ('  • Origen: Lugar de origen de la operación', False),
    ('  • Destino: Lugar de destino de la operación', False),
    ('', False),
    ('CAMPOS OPCIONALES:', True),
    ('  • Fecha/Hora Fin: Fecha y hora estimada de finalización (formato: YYYY-MM-DD HH:MM)', False),
    ('  • Cliente: Nombre del cliente (debe existir previamente en el sistema)', False),
    ('  • Proveedor: Nombre del proveedor (debe existir previamente en el sistema)', False),
    ('  • Tramo/Ruta: Nombre del tramo o ruta (debe existir previamente en el sistema)', False),
    ('  • Distancia: Distancia en kilómetros', False),
    ('  • Descripción Carga: Descripción de la mercancía a transportar', False),
    ('  • Peso Carga: Peso de la carga en kilogramos', False),
    ('  • Observaciones: Notas adicionales sobre la operación', False),
    ('', False),
    ('VALIDACIONES:', True),
    ('  • El sistema validará que el chofer y vehículo existan y pertenezcan al operador', False),
    ('  • El chofer y vehículo deben estar activos en el momento de la carga', False),
    ('  • El número de operación debe ser único dentro del operador', False),
    ('  • Si se especifica Cliente, Proveedor o Tramo, deben existir en el sistema', False),
    ('  • Las fechas deben estar en formato correcto (YYYY-MM-DD HH:MM)', False),
    ('  • Los valores numéricos deben ser positivos', False),
    ('', False),
    ('RECOMENDACIONES:', True),
    ('  • Eliminar las filas de ejemplo antes de cargar el archivo', False),
    ('  • Verificar que todos los datos referenciales (clientes, choferes, vehículos) existan', False),
    ('  • El sistema reportará todos los errores detectados para su corrección', False),
    ('  • Solo las operaciones válidas serán registradas en el sistema', False),
]

HEADER_FILL = PatternFill(fill_type='solid', start_color='0070C0', end_color='0070C0')
HEADER_FONT = Font(bold=True, color='FFFFFF', size=11)
STRIPE_FILL = PatternFill(fill_type='solid', start_color='F2F2F2', end_color='F2F2F2')
THIN = Side(style='thin')
CELL_BORDER = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)


@dataclass
class RowError:
    """One validation problem, addressed by spreadsheet row and field key."""
    row: int
    field: str
    message: str
    value: Any = None

    def to_dict(self):
        return {'row': self.row, 'field': self.field, 'message': self.message, 'value': self.value}


@dataclass
class ParseResult:
    data: List[dict] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)


def parse_row_datetime(value) -> Optional[datetime]:
    """
    Parse a cell or JSON date value.

    Accepts datetime/date objects, ISO 8601 strings and ``YYYY-MM-DD HH:MM``.
    Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None

    value = value.strip()
    try:
        parsed = parse_datetime(value)
    except ValueError:
        return None
    if parsed is not None:
        return parsed
    try:
        parsed_date = parse_date(value)
    except ValueError:
        return None
    if parsed_date is not None:
        return datetime(parsed_date.year, parsed_date.month, parsed_date.day)
    return None


def build_template() -> bytes:
    """Build the batch upload workbook with example rows and instructions."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = SHEET_NAME
    sheet.sheet_properties.tabColor = '0070C0'

    for column_index, (header, _key, width) in enumerate(COLUMNS, start=1):
        cell = sheet.cell(row=1, column=column_index, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal='center', vertical='center')
        cell.border = CELL_BORDER
        sheet.column_dimensions[cell.column_letter].width = width
    sheet.row_dimensions[1].height = 20

    for index, example in enumerate(EXAMPLE_ROWS):
        row_number = index + 2
        for column_index, (_header, key, _width) in enumerate(COLUMNS, start=1):
            value = example[key]
            cell = sheet.cell(row=row_number, column=column_index, value=value if value != '' else None)
            cell.alignment = Alignment(vertical='center')
            cell.border = CELL_BORDER
            if index % 2 == 0:
                cell.fill = STRIPE_FILL
        sheet.row_dimensions[row_number].height = 18

    instructions = workbook.create_sheet(INSTRUCTIONS_SHEET_NAME)
    instructions.sheet_properties.tabColor = 'FF6600'
    instructions.column_dimensions['A'].width = 100
    for index, (text, is_heading) in enumerate(INSTRUCTIONS, start=1):
        cell = instructions.cell(row=index, column=1, value=text or None)
        cell.alignment = Alignment(vertical='center', wrap_text=True)
        if index == 1:
            cell.font = Font(bold=True, size=14, color='0070C0')
            instructions.row_dimensions[1].height = 25
        elif is_heading:
            cell.font = Font(bold=True, size=12)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _cell_text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell_number(value):
    """Return (number, ok). Empty cells are (None, True)."""
    if value is None or value == '':
        return None, True
    if isinstance(value, bool):
        return None, False
    if isinstance(value, (int, float)):
        return value, True
    try:
        return float(str(value).strip().replace(',', '.')), True
    except ValueError:
        return None, False


def _as_int(number):
    if number is None:
        return None
    return int(round(number))


def parse_workbook(content: bytes) -> ParseResult:
    """
    Parse an uploaded workbook into row dicts keyed like the JSON batch rows.

    Raises:
        ValidationError: If the content is not a readable .xlsx workbook
    """
    try:
        workbook = openpyxl.load_workbook(BytesIO(content), data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        logger.warning(f"Unreadable workbook uploaded: {e}")
        raise ValidationError('No se pudo leer el archivo Excel')

    if SHEET_NAME not in workbook.sheetnames:
        return ParseResult(errors=[
            RowError(0, 'general', f'No se encontró la hoja "{SHEET_NAME}" en el archivo Excel')
        ])

    sheet = workbook[SHEET_NAME]
    result = ParseResult()

    for row_number, cells in enumerate(
        sheet.iter_rows(min_row=2, max_col=len(COLUMNS), values_only=True), start=2
    ):
        if all(value is None or (isinstance(value, str) and not value.strip()) for value in cells):
            continue

        raw = dict(zip((key for _header, key, _width in COLUMNS), cells))
        row = {'row': row_number}
        numeric_errors = []
        for key, value in raw.items():
            if key in NUMERIC_KEYS:
                number, ok = _cell_number(value)
                if not ok:
                    numeric_errors.append(key)
                row[key] = number
            else:
                text = _cell_text(value)
                row[key] = (text or None) if key in OPTIONAL_TEXT_KEYS else text

        validate_row(row, result.errors, numeric_errors)
        for key in NUMERIC_KEYS:
            row[key] = _as_int(row[key])
        result.data.append(row)

    logger.info(
        "Operations workbook parsed",
        extra={'rows': len(result.data), 'errors': len(result.errors)}
    )
    return result


def validate_row(row: dict, errors: list, numeric_errors=()):
    """Append the shape errors of one parsed row to ``errors``."""
    number = row['row']

    def add(field_name, message):
        errors.append(RowError(number, field_name, message, row.get(field_name)))

    def required(field_name, message, max_length=None, too_long_message=None):
        value = row.get(field_name)
        if not value:
            add(field_name, message)
        elif max_length and len(value) > max_length:
            add(field_name, too_long_message)

    required('operationNumber', 'El número de operación es obligatorio',
             50, 'El número de operación no puede exceder 50 caracteres')

    if not row.get('scheduledStartDate'):
        add('scheduledStartDate', 'La fecha/hora de inicio es obligatoria')
    elif parse_row_datetime(row['scheduledStartDate']) is None:
        add('scheduledStartDate', 'La fecha/hora de inicio tiene un formato inválido. Use: YYYY-MM-DD HH:MM')

    if row.get('scheduledEndDate') and parse_row_datetime(row['scheduledEndDate']) is None:
        add('scheduledEndDate', 'La fecha/hora de fin tiene un formato inválido. Use: YYYY-MM-DD HH:MM')

    required('driverRut', 'El RUT del chofer es obligatorio')
    required('vehiclePlateNumber', 'La patente del vehículo es obligatoria')
    required('operationType', 'El tipo de operación es obligatorio',
             50, 'El tipo de operación no puede exceder 50 caracteres')
    required('origin', 'El origen es obligatorio', 500, 'El origen no puede exceder 500 caracteres')
    required('destination', 'El destino es obligatorio', 500, 'El destino no puede exceder 500 caracteres')

    distance = row.get('distance')
    if 'distance' in numeric_errors or (distance is not None and distance < 0):
        add('distance', 'La distancia debe ser un número positivo')

    cargo_weight = row.get('cargoWeight')
    if 'cargoWeight' in numeric_errors or (cargo_weight is not None and cargo_weight < 0):
        add('cargoWeight', 'El peso de la carga debe ser un número positivo')

    if row.get('cargoDescription') and len(row['cargoDescription']) > 1000:
        add('cargoDescription', 'La descripción de la carga no puede exceder 1000 caracteres')

    if row.get('notes') and len(row['notes']) > 1000:
        add('notes', 'Las observaciones no pueden exceder 1000 caracteres')
