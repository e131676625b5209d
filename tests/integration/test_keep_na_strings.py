from __future__ import annotations

from payroll_import.models.config_models import ColumnMapping
from payroll_import.services.mapping import import_mapped_file

MAPPINGS = [
    ColumnMapping("Mã nhân viên", "employee_id", is_required=True, display_order=1),
    ColumnMapping("Tháng", "salary_month", is_required=True, display_order=2),
    ColumnMapping("Ghi chú", "ghi_chu", display_order=3),
]


def test_na_like_texts_reach_the_mapping_untouched(make_table):
    content = make_table(
        [
            ["Mã nhân viên", "Tháng", "Ghi chú"],
            ["NA", "2025-01", "N/A"],
            ["NV002", "2025-01", "null"],
        ]
    )
    result = import_mapped_file(content, MAPPINGS, "notes.xlsx")
    assert result.success
    assert [r.employee_id for r in result.records] == ["NA", "NV002"]
    assert [r.values["ghi_chu"] for r in result.records] == ["N/A", "null"]
