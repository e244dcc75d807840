import unittest
from datetime import date
from io import BytesIO

from openpyxl import load_workbook

from backend.app.extraction.schemas import AnalysisMetadata, ShiftRecord
from backend.app.services.excel_service import ExcelService, record_totals


def _record(name, day, cedula='???', **fields):
    values = {
        'person_name': name,
        'person_cedula': cedula,
        'date': date(2025, 6, day),
        'day_of_week': 'Lunes',
        'start_time': '07:00',
        'end_time': '17:00',
        'lunch_break': '12:00-13:00',
        'duty_summary': '07:00-17:00 D 1h',
        'campaign_code': 'AVC',
    }
    values.update(fields)
    return ShiftRecord(**values)


REST = {'is_rest_day': True, 'start_time': None, 'end_time': None, 'lunch_break': None, 'duty_summary': 'DESCANSO'}
SPLIT = {
    'is_split_shift': True, 'start_time': '06:00', 'end_time': '10:00', 'lunch_break': None,
    'split_start_time_2': '17:00', 'split_end_time_2': '22:00', 'duty_summary': '06:00-10:00 // 17:00-22:00',
}


class ExcelServiceTests(unittest.TestCase):
    def setUp(self):
        self.service = ExcelService()
        self.metadata = AnalysisMetadata(supervisor='LAURA GOMEZ', campaign='AVC', contract='C-1', week_label='Semana 25')
        self.records = [
            _record('ZULMA RUIZ', 17, cedula='2002', **REST),
            _record('ANA PEREZ', 17, cedula='1001', **SPLIT),
            _record('ZULMA RUIZ', 16, cedula='2002'),
            _record('ANA PEREZ', 16, cedula='1001', is_leave=True, leave_reason='Vacaciones',
                    start_time=None, end_time=None, lunch_break=None, duty_summary='VACACIONES'),
        ]

    @staticmethod
    def _load(data):
        return load_workbook(BytesIO(data))

    def test_shifts_workbook_sorted_by_date_then_name(self):
        wb = self._load(self.service.generate_shifts_workbook(self.records, self.metadata))
        ws = wb['Turnos Programados']

        self.assertEqual(ws['A1'].value, 'FORMATO TURNOS PROGRAMADOS')
        self.assertEqual(ws['A2'].value, 'Supervisor: LAURA GOMEZ')
        self.assertEqual(ws['A5'].value, 'Fecha')
        self.assertEqual(ws['J5'].value, 'Observación')

        rows = list(ws.iter_rows(min_row=6, values_only=True))
        self.assertEqual([(row[0], row[2]) for row in rows], [
            ('2025-06-16', 'ANA PEREZ'),
            ('2025-06-16', 'ZULMA RUIZ'),
            ('2025-06-17', 'ANA PEREZ'),
            ('2025-06-17', 'ZULMA RUIZ'),
        ])

        leave_row, working_row, split_row, rest_row = rows
        self.assertEqual(leave_row[8], 'VACACIONES')
        self.assertEqual(leave_row[9], 'Vacaciones')
        self.assertIn(leave_row[5], (None, ''))
        self.assertEqual(working_row[7], '12:00-13:00')
        self.assertEqual(split_row[8], '06:00-10:00 // 17:00-22:00')
        self.assertIn(split_row[7], (None, ''))
        self.assertEqual(rest_row[9], 'DESCANSO')
        self.assertEqual(ws.freeze_panes, 'A6')

    def test_template_workbook_sorted_by_name_then_date(self):
        wb = self._load(self.service.generate_template_workbook(self.records, self.metadata))
        self.assertEqual(wb.sheetnames, ['Programación Turnos', 'Contratos', 'Jornadas'])

        ws = wb['Programación Turnos']
        self.assertEqual(ws['A4'].value, 'Cédula')
        rows = list(ws.iter_rows(min_row=5, values_only=True))
        self.assertEqual([(row[1], row[4]) for row in rows], [
            ('ANA PEREZ', '2025-06-16'),
            ('ANA PEREZ', '2025-06-17'),
            ('ZULMA RUIZ', '2025-06-16'),
            ('ZULMA RUIZ', '2025-06-17'),
        ])
        self.assertEqual([row[7] for row in rows], ['Vacaciones', 'Trabajando', 'Trabajando', 'Descanso'])
        self.assertEqual(rows[0][2], 'C-1')

        contracts = list(wb['Contratos'].iter_rows(min_row=2, values_only=True))
        self.assertEqual([row[:2] for row in contracts], [('2002', 'ZULMA RUIZ'), ('1001', 'ANA PEREZ')])

        duties = sorted(wb['Jornadas'].iter_rows(min_row=2, values_only=True))
        self.assertEqual(duties, [
            ('06:00-10:00 // 17:00-22:00', 'Split', 1),
            ('07:00-17:00 D 1h', 'Normal', 1),
        ])

    def test_empty_records_still_render_headers(self):
        wb = self._load(self.service.generate_shifts_workbook([], AnalysisMetadata()))
        self.assertEqual(wb.active['A5'].value, 'Fecha')
        self.assertEqual(wb.active.max_row, 5)

    def test_record_totals(self):
        self.assertEqual(record_totals(self.records), {
            'total_agents': 2,
            'total_shifts': 4,
            'total_rest_days': 1,
            'total_leave_days': 1,
            'total_split_shifts': 1,
        })


if __name__ == '__main__':
    unittest.main()
