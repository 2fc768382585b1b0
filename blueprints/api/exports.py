"""Export routes (day schedule Excel export for staff)."""

import io

from flask import request, Response
from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from models.booking import get_bookings_filtered, STATUS_LABELS
from models.exceptions import ValidationError
from utils.datetime_helpers import get_today
from utils.decorators import capability_required
from utils.messages import MESSAGES
from utils.permissions import VIEW
from utils.validators import validate_date_format

HEADERS = [
    'Билет', 'Объект', 'Время', 'Тип', 'Гостей',
    'Гость', 'Телефон', 'Статус', 'Сумма', 'Оплата', 'Комментарий'
]

PAYMENT_LABELS = {
    'erip': 'ЕРИП',
    'cash': 'Наличные',
}


def register_routes(bp):
    """Register export routes on the blueprint."""

    @bp.route('/bookings/export')
    @capability_required(VIEW)
    def export_schedule():
        """
        Day schedule as an Excel file.

        Query params:
            date: YYYY-MM-DD (default: today)
            category: 'spa' | 'bath' | 'quad' (optional)
        """
        day = request.args.get('date') or get_today().isoformat()
        if not validate_date_format(day):
            raise ValidationError(MESSAGES['invalid_date'], field='date')

        bookings = get_bookings_filtered(
            booking_date=day,
            category=request.args.get('category') or None,
            limit=1000
        )
        return export_schedule_handler(day, bookings)


def export_schedule_handler(day: str, bookings: list) -> Response:
    """
    Build the schedule workbook and return it as a download.

    Args:
        day: Date of the schedule (YYYY-MM-DD)
        bookings: Booking dicts ordered by start time

    Returns:
        Response: Excel file download response
    """
    wb = Workbook()
    ws = wb.active
    ws.title = 'Расписание'

    # Styles
    header_font = Font(bold=True, color='FFFFFF', size=11)
    header_fill = PatternFill(start_color='2F4F2F', end_color='2F4F2F', fill_type='solid')
    header_alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
    thin_border = Border(
        left=Side(style='thin', color='D4D4D4'),
        right=Side(style='thin', color='D4D4D4'),
        top=Side(style='thin', color='D4D4D4'),
        bottom=Side(style='thin', color='D4D4D4')
    )
    center_alignment = Alignment(horizontal='center', vertical='center')
    muted_font = Font(color='999999')

    last_column = chr(ord('A') + len(HEADERS) - 1)

    # Title row
    ws.merge_cells(f'A1:{last_column}1')
    title_cell = ws.cell(row=1, column=1, value=f'Расписание на {day}')
    title_cell.font = Font(bold=True, size=14, color='2F4F2F')
    title_cell.alignment = center_alignment

    # Subtitle with totals of bookings that still hold their slot
    active = [b for b in bookings if b['status'] in ('pending_call', 'confirmed', 'completed')]
    revenue = sum(b['price_total'] for b in active if b['status'] != 'pending_call')
    ws.merge_cells(f'A2:{last_column}2')
    subtitle_cell = ws.cell(
        row=2, column=1,
        value=f'Бронирований: {len(active)} | Сумма подтвержденных: {revenue} BYN'
    )
    subtitle_cell.font = Font(size=10, color='666666')
    subtitle_cell.alignment = center_alignment

    # Headers (row 4)
    header_row = 4
    for col, header in enumerate(HEADERS, 1):
        cell = ws.cell(row=header_row, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border

    ws.freeze_panes = f'A{header_row + 1}'

    for row_idx, booking in enumerate(bookings, header_row + 1):
        values = [
            booking['ticket_number'],
            booking['resource_code'],
            f"{booking['start_time']}-{booking['end_time']}",
            booking['subtype'],
            booking['guest_count'],
            booking['customer_name'],
            booking['customer_phone'],
            STATUS_LABELS.get(booking['status'], booking['status']),
            booking['price_total'],
            PAYMENT_LABELS.get(booking['payment_method'], '-'),
            booking['comment'] or '',
        ]
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.border = thin_border
            if col in (1, 2, 3, 5, 9):
                cell.alignment = center_alignment

        # Bookings that did not take place are kept for reference but greyed out
        if booking['status'] in ('cancelled', 'expired', 'no_show'):
            for col in range(1, len(HEADERS) + 1):
                ws.cell(row=row_idx, column=col).font = muted_font

    # Column widths from content
    for col_cells in ws.columns:
        anchor_cell = next((c for c in col_cells if not isinstance(c, MergedCell)), None)
        if anchor_cell is None:
            continue
        width = max(len(str(c.value or '')) for c in col_cells if not isinstance(c, MergedCell))
        ws.column_dimensions[anchor_cell.column_letter].width = min(max(width, 8) + 3, 50)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)

    return Response(
        output.getvalue(),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        headers={
            'Content-Disposition': f'attachment; filename=schedule_{day}.xlsx'
        }
    )
