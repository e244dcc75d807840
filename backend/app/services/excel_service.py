from collections import OrderedDict
from copy import copy
from io import BytesIO
from typing import Iterable, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..extraction.schemas import UNKNOWN_CEDULA, AnalysisMetadata, ShiftRecord
from ..extraction.time_normalization import DEFAULT_LEAVE_REASON, REST_DAY_LABEL

XLSX_FILENAMES = {
    'shifts': 'Formato_Turnos_Programados.xlsx',
    'template': 'Plantilla_Programacion_Turnos.xlsx',
}

SHIFTS_SHEET_TITLE = 'FORMATO TURNOS PROGRAMADOS'
TEMPLATE_SHEET_TITLE = 'PLANTILLA PROGRAMACIÓN TURNOS'

SHIFTS_COLUMNS = [
    ('Fecha', 14),
    ('Cédula', 16),
    ('Nombre Agente', 30),
    ('Campaña', 20),
    ('Supervisor', 22),
    ('Hora Inicio', 13),
    ('Hora Fin', 13),
    ('Almuerzo', 20),
    ('Jornada', 28),
    ('Observación', 20),
]

TEMPLATE_COLUMNS = [
    ('Cédula', 16),
    ('Nombre Agente', 30),
    ('Contrato', 16),
    ('Jornada', 30),
    ('Fecha', 14),
    ('Día', 12),
    ('Líder', 22),
    ('Estado', 20),
]

CONTRACT_COLUMNS = [('Cédula', 16), ('Nombre', 30), ('Campaña', 20), ('Contrato', 16), ('Líder', 22)]
DUTY_COLUMNS = [('Jornada', 35), ('Tipo', 16), ('Cantidad', 12)]

WORKING_STATE = 'Trabajando'
REST_STATE = 'Descanso'

BRAND_COLOR = 'FF1B52F5'
THIN = Side(style='thin')


class ExcelService:
    """Renders reviewed shift records into the two roster spreadsheets."""

    header_fill = PatternFill(fill_type='solid', fgColor=BRAND_COLOR)
    header_font = Font(bold=True, color='FFFFFFFF', size=11)
    title_font = Font(bold=True, size=14, color=BRAND_COLOR)
    body_font = Font(size=10)
    border = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)
    rest_fill = PatternFill(fill_type='solid', fgColor='FFFFF3CD')
    leave_fill = PatternFill(fill_type='solid', fgColor='FFFDE8D8')
    stripe_fill = PatternFill(fill_type='solid', fgColor='FFF8F9FC')

    @staticmethod
    def _to_bytes(workbook: Workbook) -> bytes:
        output = BytesIO()
        workbook.save(output)
        return output.getvalue()

    def _write_title(self, ws, title: str, last_col: int):
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=last_col)
        cell = ws.cell(row=1, column=1, value=title)
        cell.font = copy(self.title_font)
        cell.alignment = Alignment(horizontal='center', vertical='middle')
        ws.row_dimensions[1].height = 30

    def _write_label(self, ws, row: int, start_col: int, end_col: int, text: str, bold: bool = False):
        ws.merge_cells(start_row=row, start_column=start_col, end_row=row, end_column=end_col)
        cell = ws.cell(row=row, column=start_col, value=text)
        if bold:
            cell.font = Font(bold=True)

    def _write_headers(self, ws, row: int, columns):
        for col, (header, width) in enumerate(columns, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.fill = copy(self.header_fill)
            cell.font = copy(self.header_font)
            cell.alignment = Alignment(horizontal='center', vertical='middle')
            cell.border = copy(self.border)
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.row_dimensions[row].height = 22

    def _write_row(self, ws, row: int, values: List, fill: Optional[PatternFill], left_cols: int):
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = copy(self.border)
            cell.font = copy(self.body_font)
            cell.alignment = Alignment(vertical='middle', horizontal='left' if col <= left_cols else 'center')
            if fill is not None:
                cell.fill = copy(fill)
        ws.row_dimensions[row].height = 18

    def _row_fill(self, record: ShiftRecord, index: int) -> Optional[PatternFill]:
        if record.is_leave:
            return self.leave_fill
        if record.is_rest_day:
            return self.rest_fill
        return self.stripe_fill if index % 2 else None

    @staticmethod
    def _cedula(record: ShiftRecord) -> str:
        return record.person_cedula or UNKNOWN_CEDULA

    @staticmethod
    def _observation(record: ShiftRecord) -> str:
        if record.is_rest_day:
            return REST_DAY_LABEL
        if record.is_leave:
            return record.leave_reason or DEFAULT_LEAVE_REASON
        return ''

    @staticmethod
    def _state(record: ShiftRecord) -> str:
        if record.is_rest_day:
            return REST_STATE
        if record.is_leave:
            return record.leave_reason or DEFAULT_LEAVE_REASON
        return WORKING_STATE

    def generate_shifts_workbook(self, records: Iterable[ShiftRecord], metadata: AnalysisMetadata) -> bytes:
        """File 1: one row per shift, sorted by date then agent name."""
        wb = Workbook()
        ws = wb.active
        ws.title = 'Turnos Programados'
        ws.page_setup.fitToWidth = 1
        ws.sheet_properties.pageSetUpPr.fitToPage = True
        last_col = len(SHIFTS_COLUMNS)

        self._write_title(ws, SHIFTS_SHEET_TITLE, last_col)
        self._write_label(ws, 2, 1, 5, f'Supervisor: {metadata.supervisor or ""}', bold=True)
        self._write_label(ws, 2, 6, last_col, f'Campaña: {metadata.campaign or ""}', bold=True)
        self._write_label(ws, 3, 1, 5, f'Semana: {metadata.week_label or ""}')
        self._write_label(ws, 3, 6, last_col, f'Contrato: {metadata.contract or ""}')
        self._write_headers(ws, 5, SHIFTS_COLUMNS)

        ordered = sorted(records, key=lambda r: (r.date, r.person_name))
        for index, record in enumerate(ordered):
            off_duty = record.is_rest_day or record.is_leave
            observation = self._observation(record)
            lunch = '' if off_duty or record.is_split_shift else (record.lunch_break or '')
            values = [
                record.date.isoformat(),
                self._cedula(record),
                record.person_name,
                record.campaign_code or metadata.campaign or '',
                metadata.supervisor or '',
                '' if off_duty else (record.start_time or ''),
                '' if off_duty else (record.end_time or ''),
                lunch,
                record.duty_summary or observation,
                observation,
            ]
            self._write_row(ws, 6 + index, values, self._row_fill(record, index), left_cols=3)

        ws.freeze_panes = 'A6'
        ws.auto_filter.ref = f'A5:{get_column_letter(last_col)}{max(5, 5 + len(ordered))}'
        return self._to_bytes(wb)

    def generate_template_workbook(self, records: Iterable[ShiftRecord], metadata: AnalysisMetadata) -> bytes:
        """File 2: scheduling template plus contract and duty summary sheets."""
        records = list(records)
        wb = Workbook()
        ws = wb.active
        ws.title = 'Programación Turnos'
        last_col = len(TEMPLATE_COLUMNS)

        self._write_title(ws, TEMPLATE_SHEET_TITLE, last_col)
        self._write_label(ws, 2, 1, 4, f'Líder: {metadata.supervisor or ""}', bold=True)
        self._write_label(ws, 2, 5, last_col, f'Semana: {metadata.week_label or ""}', bold=True)
        self._write_headers(ws, 4, TEMPLATE_COLUMNS)

        ordered = sorted(records, key=lambda r: (r.person_name, r.date))
        for index, record in enumerate(ordered):
            values = [
                self._cedula(record),
                record.person_name,
                record.contract_code or metadata.contract or '',
                record.duty_summary,
                record.date.isoformat(),
                record.day_of_week,
                metadata.supervisor or '',
                self._state(record),
            ]
            self._write_row(ws, 5 + index, values, self._row_fill(record, index), left_cols=2)

        ws.freeze_panes = 'A5'
        ws.auto_filter.ref = f'A4:{get_column_letter(last_col)}{max(4, 4 + len(ordered))}'

        self._write_contracts_sheet(wb.create_sheet('Contratos'), records, metadata)
        self._write_duties_sheet(wb.create_sheet('Jornadas'), records)
        return self._to_bytes(wb)

    def _write_contracts_sheet(self, ws, records: List[ShiftRecord], metadata: AnalysisMetadata):
        self._write_headers(ws, 1, CONTRACT_COLUMNS)
        people = OrderedDict()
        for record in records:
            people.setdefault(record.identity_key, record)

        for index, record in enumerate(people.values()):
            values = [
                self._cedula(record),
                record.person_name,
                record.campaign_code or metadata.campaign or '',
                record.contract_code or metadata.contract or '',
                metadata.supervisor or '',
            ]
            self._write_row(ws, 2 + index, values, self.stripe_fill if index % 2 else None, left_cols=2)

    def _write_duties_sheet(self, ws, records: List[ShiftRecord]):
        self._write_headers(ws, 1, DUTY_COLUMNS)
        counts = OrderedDict()
        for record in records:
            if record.is_rest_day or record.is_leave:
                continue
            key = (record.duty_summary, 'Split' if record.is_split_shift else 'Normal')
            counts[key] = counts.get(key, 0) + 1

        for index, ((summary, kind), count) in enumerate(counts.items()):
            self._write_row(ws, 2 + index, [summary, kind, count], self.stripe_fill if index % 2 else None, left_cols=1)


def record_totals(records: Iterable[ShiftRecord]) -> dict:
    """Counters stored with each history entry."""
    records = list(records)
    return {
        'total_agents': len({record.identity_key for record in records}),
        'total_shifts': len(records),
        'total_rest_days': sum(1 for record in records if record.is_rest_day),
        'total_leave_days': sum(1 for record in records if record.is_leave),
        'total_split_shifts': sum(1 for record in records if record.is_split_shift),
    }
