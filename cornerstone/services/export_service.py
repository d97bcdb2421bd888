"""
数据导出服务
支持 CSV、Excel 格式导出
"""
import csv
import io
from io import BytesIO
from datetime import date, datetime
from typing import List, Dict, Any

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter


class ExportService:
    """数据导出服务"""

    @staticmethod
    def format_value(value, col_def: Dict[str, Any]) -> str:
        """
        按列定义格式化单元格
        number: 两位小数；percent: 两位小数加 %；空值使用列的 default
        """
        if value is None or value == '':
            return col_def.get('default', '')

        fmt = col_def.get('format')
        if fmt == 'number':
            return f"{float(value):.2f}"
        if fmt == 'percent':
            return f"{float(value):.2f}%"
        if isinstance(value, datetime):
            return value.strftime('%Y-%m-%d %H:%M:%S')
        if isinstance(value, date):
            return value.isoformat()
        return str(value)

    @staticmethod
    def to_csv_text(
        data: List[Dict[str, Any]],
        columns: List[Dict[str, str]]
    ) -> str:
        """
        生成 CSV 文本：首行为列标题，每条记录一行；
        含逗号、引号或换行的值由 csv 模块自动加引号
        """
        text_output = io.StringIO()
        writer = csv.writer(text_output, lineterminator='\r\n')

        # 写入表头
        writer.writerow([col['header'] for col in columns])

        # 写入数据
        for row in data:
            writer.writerow([
                ExportService.format_value(row.get(col['field']), col) for col in columns
            ])

        return text_output.getvalue()

    @staticmethod
    def export_to_csv(
        data: List[Dict[str, Any]],
        columns: List[Dict[str, str]],
        bom: bool = True
    ) -> BytesIO:
        """
        导出数据到 CSV

        Args:
            data: 数据列表
            columns: 列定义 [{"field": "quantity", "header": "Quantity", "format": "number"}, ...]
            bom: 是否写入 UTF-8 BOM (便于 Excel 正确识别编码)

        Returns:
            BytesIO: CSV 文件流
        """
        output = BytesIO()
        if bom:
            output.write('\ufeff'.encode('utf-8'))
        output.write(ExportService.to_csv_text(data, columns).encode('utf-8'))
        output.seek(0)
        return output

    @staticmethod
    def export_to_excel(
        data: List[Dict[str, Any]],
        columns: List[Dict[str, str]],
        sheet_name: str = "Sheet1",
        title: str = "Data Export"
    ) -> BytesIO:
        """
        导出数据到 Excel

        Args:
            data: 数据列表 [{"field1": value1, "field2": value2}, ...]
            columns: 列定义 [{"field": "field1", "header": "Field 1", "width": 15}, ...]
            sheet_name: 工作表名称
            title: 报表标题

        Returns:
            BytesIO: Excel 文件流
        """
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = sheet_name

        # 样式定义
        title_font = Font(name='Calibri', size=16, bold=True, color='FFFFFF')
        title_fill = PatternFill(start_color='B45309', end_color='B45309', fill_type='solid')
        header_font = Font(name='Calibri', size=11, bold=True, color='FFFFFF')
        header_fill = PatternFill(start_color='374151', end_color='374151', fill_type='solid')
        cell_font = Font(name='Calibri', size=10)
        border = Border(
            left=Side(style='thin', color='E5E7EB'),
            right=Side(style='thin', color='E5E7EB'),
            top=Side(style='thin', color='E5E7EB'),
            bottom=Side(style='thin', color='E5E7EB')
        )

        # 写入标题（合并单元格）
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
        title_cell = ws.cell(row=1, column=1, value=title)
        title_cell.font = title_font
        title_cell.fill = title_fill
        title_cell.alignment = Alignment(horizontal='center', vertical='center')
        ws.row_dimensions[1].height = 30

        # 写入导出时间
        ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(columns))
        time_cell = ws.cell(row=2, column=1, value=f"Exported: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        time_cell.font = Font(name='Calibri', size=9, color='6B7280')
        time_cell.alignment = Alignment(horizontal='center')
        ws.row_dimensions[2].height = 20

        # 写入表头
        for col_idx, col_def in enumerate(columns, start=1):
            cell = ws.cell(row=3, column=col_idx, value=col_def['header'])
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = border

            # 设置列宽
            column_letter = get_column_letter(col_idx)
            ws.column_dimensions[column_letter].width = col_def.get('width', 15)

        ws.row_dimensions[3].height = 25

        # 写入数据
        for row_idx, row_data in enumerate(data, start=4):
            for col_idx, col_def in enumerate(columns, start=1):
                value = row_data.get(col_def['field'])
                fmt = col_def.get('format')

                if fmt in ('number', 'percent') and value is not None:
                    value = round(float(value), 2)
                elif isinstance(value, (date, datetime)):
                    value = ExportService.format_value(value, col_def)
                elif value is None or value == '':
                    value = col_def.get('default', '')

                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.font = cell_font
                cell.border = border

                # 数字右对齐，其他左对齐
                if isinstance(value, (int, float)):
                    cell.number_format = '0.00'
                    cell.alignment = Alignment(horizontal='right', vertical='center')
                else:
                    cell.alignment = Alignment(horizontal='left', vertical='center')

            ws.row_dimensions[row_idx].height = 20

        # 冻结前三行（标题 + 时间 + 表头）
        ws.freeze_panes = 'A4'

        # 保存到 BytesIO
        output = BytesIO()
        wb.save(output)
        output.seek(0)

        return output


# 全局单例
export_service = ExportService()
