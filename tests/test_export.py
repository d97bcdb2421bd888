import csv
import io
from datetime import date

import openpyxl

from cornerstone.services.export_service import export_service
from cornerstone.services.report_service import ReportService

COST_COLUMNS = ReportService.COLUMNS['cost']
WASTE_COLUMNS = ReportService.COLUMNS['waste']


def cost_row(**overrides):
    row = {
        'site_name': 'Site A', 'material_name': 'Cement', 'category': 'Cement',
        'quantity': 10.5, 'unit_of_measure': 'bag', 'unit_cost': 5, 'total_value': 52.5,
    }
    row.update(overrides)
    return row


def test_csv_header_and_number_format():
    text = export_service.to_csv_text([cost_row()], COST_COLUMNS)
    lines = text.split('\r\n')

    assert lines[0] == 'Site,Material,Category,Quantity,Unit,Unit Cost,Total Value'
    assert lines[1] == 'Site A,Cement,Cement,10.50,bag,5.00,52.50'


def test_csv_quotes_commas_and_quotes():
    text = export_service.to_csv_text([cost_row(site_name='Block 4, "East"')], COST_COLUMNS)
    row = next(csv.reader(io.StringIO(text.split('\r\n', 1)[1])))

    assert text.split('\r\n')[1].startswith('"Block 4, ""East"""')
    assert row[0] == 'Block 4, "East"'


def test_csv_waste_percent_and_missing_notes():
    row = {
        'report_date': date(2024, 5, 1), 'site_name': 'Site A', 'material_name': 'Cement',
        'expected_quantity': 100, 'actual_quantity': 115, 'variance': 15,
        'variance_percentage': 15, 'value_lost': 157.5, 'notes': None,
    }
    line = export_service.to_csv_text([row], WASTE_COLUMNS).split('\r\n')[1]
    assert line == '2024-05-01,Site A,Cement,100.00,115.00,15.00,15.00%,157.50,N/A'


def test_csv_bytes_carry_bom():
    data = export_service.export_to_csv([cost_row()], COST_COLUMNS).getvalue()
    assert data.startswith(b'\xef\xbb\xbf')
    assert export_service.export_to_csv([], COST_COLUMNS, bom=False).getvalue().startswith(b'Site,')


def test_excel_export_layout():
    output = export_service.export_to_excel([cost_row()], COST_COLUMNS, sheet_name='Cost', title='Cost Report')
    ws = openpyxl.load_workbook(output).active

    assert ws.title == 'Cost'
    assert ws.cell(row=1, column=1).value == 'Cost Report'
    assert [c.value for c in ws[3]] == [col['header'] for col in COST_COLUMNS]
    assert ws.cell(row=4, column=4).value == 10.5
    assert ws.cell(row=4, column=7).value == 52.5
