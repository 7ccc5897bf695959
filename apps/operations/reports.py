"""
PDF report of a single operation, built with reportlab.
"""
import logging
from io import BytesIO

from django.utils import timezone
from django.utils.html import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

LABELS = {
    'es': {
        'title': 'Reporte de Operación',
        'generated': 'Generado el',
        'operation': 'Operación',
        'operator': 'Operador',
        'client': 'Cliente',
        'provider': 'Proveedor',
        'route': 'Tramo/Ruta',
        'driver': 'Chofer',
        'vehicle': 'Vehículo',
        'number': 'N° Operación',
        'type': 'Tipo',
        'status': 'Estado',
        'origin': 'Origen',
        'destination': 'Destino',
        'scheduled_start': 'Inicio programado',
        'scheduled_end': 'Fin programado',
        'actual_start': 'Inicio real',
        'actual_end': 'Fin real',
        'distance': 'Distancia (km)',
        'cargo': 'Descripción carga',
        'weight': 'Peso carga (kg)',
        'notes': 'Observaciones',
        'name': 'Nombre',
        'contact': 'Contacto',
        'phone': 'Teléfono',
        'license': 'Licencia',
        'plate': 'Patente',
        'brand_model': 'Marca / Modelo',
        'vehicle_type': 'Tipo de vehículo',
        'none': 'No especificado',
    },
    'en': {
        'title': 'Operation Report',
        'generated': 'Generated on',
        'operation': 'Operation',
        'operator': 'Operator',
        'client': 'Client',
        'provider': 'Provider',
        'route': 'Route',
        'driver': 'Driver',
        'vehicle': 'Vehicle',
        'number': 'Operation #',
        'type': 'Type',
        'status': 'Status',
        'origin': 'Origin',
        'destination': 'Destination',
        'scheduled_start': 'Scheduled start',
        'scheduled_end': 'Scheduled end',
        'actual_start': 'Actual start',
        'actual_end': 'Actual end',
        'distance': 'Distance (km)',
        'cargo': 'Cargo description',
        'weight': 'Cargo weight (kg)',
        'notes': 'Notes',
        'name': 'Name',
        'contact': 'Contact',
        'phone': 'Phone',
        'license': 'License',
        'plate': 'Plate',
        'brand_model': 'Brand / Model',
        'vehicle_type': 'Vehicle type',
        'none': 'Not specified',
    },
}

HEADER_COLOR = colors.HexColor('#0070C0')


def _fmt(value, empty):
    if value is None or value == '':
        return empty
    if hasattr(value, 'strftime'):
        return timezone.localtime(value).strftime('%Y-%m-%d %H:%M') if timezone.is_aware(value) \
            else value.strftime('%Y-%m-%d %H:%M')
    return str(value)


def _section(title, rows, styles):
    """A heading followed by a two-column label/value table."""
    cell_style = styles['Cell']
    data = [[Paragraph(f'<b>{label}</b>', cell_style), Paragraph(escape(value), cell_style)] for label, value in rows]
    table = Table(data, colWidths=[5 * cm, 12 * cm], hAlign='LEFT')
    table.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#F2F2F2')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
    ]))
    return [Paragraph(title, styles['Section']), table, Spacer(1, 0.4 * cm)]


def build_operation_report(operation, language: str = 'es') -> bytes:
    """
    Render ``operation`` (with its related records loaded) as a PDF.

    Sections: operation, operator, client, provider, route, driver, vehicle.
    Missing optional references render as "not specified".
    """
    labels = LABELS.get(language, LABELS['es'])
    none = labels['none']

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name='Cell', fontSize=9, leading=11))
    styles.add(ParagraphStyle(
        name='Section', parent=styles['Heading2'], textColor=HEADER_COLOR, spaceAfter=6
    ))

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        rightMargin=1.5 * cm, leftMargin=1.5 * cm,
        topMargin=1.5 * cm, bottomMargin=1.5 * cm,
        title=f"{labels['title']} {operation.operation_number}",
    )

    story = [
        Paragraph(f"{labels['title']} {escape(operation.operation_number)}", styles['Title']),
        Paragraph(f"{labels['generated']} {timezone.localtime().strftime('%Y-%m-%d %H:%M')}", styles['Normal']),
        Spacer(1, 0.6 * cm),
    ]

    story += _section(labels['operation'], [
        (labels['number'], _fmt(operation.operation_number, none)),
        (labels['type'], _fmt(operation.operation_type, none)),
        (labels['status'], _fmt(operation.get_status_display(), none)),
        (labels['origin'], _fmt(operation.origin, none)),
        (labels['destination'], _fmt(operation.destination, none)),
        (labels['scheduled_start'], _fmt(operation.scheduled_start_date, none)),
        (labels['scheduled_end'], _fmt(operation.scheduled_end_date, none)),
        (labels['actual_start'], _fmt(operation.actual_start_date, none)),
        (labels['actual_end'], _fmt(operation.actual_end_date, none)),
        (labels['distance'], _fmt(operation.distance, none)),
        (labels['cargo'], _fmt(operation.cargo_description, none)),
        (labels['weight'], _fmt(operation.cargo_weight, none)),
        (labels['notes'], _fmt(operation.notes, none)),
    ], styles)

    story += _section(labels['operator'], [(labels['name'], _fmt(operation.operator.name, none))], styles)

    for key, partner in (('client', operation.client), ('provider', operation.provider)):
        if partner is None:
            rows = [(labels['name'], none)]
        else:
            rows = [
                (labels['name'], _fmt(partner.business_name, none)),
                (labels['contact'], _fmt(partner.contact_name, none)),
                (labels['phone'], _fmt(partner.contact_phone, none)),
            ]
        story += _section(labels[key], rows, styles)

    route = operation.route
    if route is None:
        route_rows = [(labels['name'], none)]
    else:
        route_rows = [
            (labels['name'], _fmt(route.name, none)),
            (labels['distance'], _fmt(route.distance, none)),
        ]
    story += _section(labels['route'], route_rows, styles)

    driver = operation.driver
    story += _section(labels['driver'], [
        (labels['name'], _fmt(driver.get_full_name(), none)),
        ('RUT', _fmt(driver.rut, none)),
        (labels['phone'], _fmt(driver.phone, none)),
        (labels['license'], _fmt(driver.license_type, none)),
    ], styles)

    vehicle = operation.vehicle
    brand_model = ' '.join(part for part in (vehicle.brand, vehicle.model) if part)
    story += _section(labels['vehicle'], [
        (labels['plate'], _fmt(vehicle.plate_number, none)),
        (labels['brand_model'], _fmt(brand_model, none)),
        (labels['vehicle_type'], _fmt(vehicle.get_vehicle_type_display(), none)),
    ], styles)

    doc.build(story)
    logger.info(
        "Operation report generated",
        extra={'operation_id': str(operation.id), 'language': language}
    )
    return buffer.getvalue()
