"""
services/export_service.py

- 판정 목록을 내려받기용 텍스트(CSV / JSON)로 직렬화
- 입력 화면(entry flow)의 메모리 목록과 저장된 세션 모두 같은 형식 사용
  row 키: id, name, avg, status, subject, timestamp
"""

import csv
import io
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from services.grading import aggregate

CSV_HEADER = ["Student ID", "Name", "Average", "Status", "Subject", "Timestamp"]


def _format_avg(value: Any) -> str:
    if value is None or value == "":
        return ""
    return f"{float(value):.2f}"


def export_csv(rows: Iterable[Mapping[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow([
            row.get("id") or "",
            row.get("name") or "",
            _format_avg(row.get("avg")),
            row.get("status") or "",
            row.get("subject") or "",
            row.get("timestamp") or "",
        ])
    return buffer.getvalue()


def export_json(session_name: Optional[str], rows: Iterable[Mapping[str, Any]],
                date: Optional[datetime] = None) -> str:
    students: List[Dict[str, Any]] = [dict(row) for row in rows]
    summary = aggregate(students)
    data = {
        "session_name": session_name or "Unnamed Session",
        "date": (date or datetime.now()).isoformat(),
        "total_students": summary.total,
        "statistics": {
            "valide": summary.valide,
            "ratt": summary.ratt,
            "nv": summary.nv,
        },
        "students": students,
    }
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


EXPORT_FORMATS = {
    # 형식 → (media type, 파일명)
    "csv": ("text/csv", "students_results.csv"),
    "json": ("application/json", "students_session.json"),
}
