"""
scripts/entry_wizard.py

콘솔용 순차 입력 흐름
- 학생 수 입력 → 한 명씩 이름/평균 입력 (빈 이름 = 건너뛰기)
- 완료 후 통계 출력, CSV/JSON 저장 또는 save-session API 로 전송
실행: python -m scripts.entry_wizard [API_BASE_URL]
"""

import sys

import requests

from services import entry_flow
from utils.errors import ValidationError

API_BASE_URL = "http://localhost:8000"
NO_PROXY = {"http": None, "https": None}  # 프록시 무시 설정


def _ask(prompt: str) -> str:
    return input(prompt).strip()


def _print_summary(state):
    summary = state.summary()
    print("\n=== 결과 ===")
    for s in state.students:
        print(f"{s.id}  {s.name:<25} {s.avg:>6.2f}  {s.status}")
    print(f"\nTotal: {summary.total}  Validé: {summary.valide}  "
          f"Ratt: {summary.ratt}  NV: {summary.nv}  Success: {summary.success_rate}%")


def collect(state):
    while not state.complete:
        print(f"\nStudent {state.count + 1} of {state.total}  (ID: {state.candidate_id})")
        name = _ask("Name (empty to skip): ")
        if not name:
            state = entry_flow.skip_student(state)
            continue
        avg = _ask("Average (0-20): ")
        subject = _ask("Subject (optional): ")
        try:
            state = entry_flow.add_student(state, name, avg, subject)
        except ValidationError as e:
            print(f"❌ {e.message}")
    return state


def save(state, base_url: str, session_name: str):
    payload = entry_flow.to_session_payload(state, session_name)
    resp = requests.post(f"{base_url}/api/validation/save-session",
                         json=payload, proxies=NO_PROXY, timeout=10)
    result = resp.json()
    if result.get("success"):
        print(f"✅ Session saved successfully! Session ID: {result['session_id']}")
    else:
        print(f"❌ Error saving session: {result.get('error')}")


def main(base_url: str = API_BASE_URL):
    while True:
        try:
            state = entry_flow.start(_ask("Number of students (1-100): "))
            break
        except ValidationError as e:
            print(f"❌ {e.message}")

    state = collect(state)
    if not state.students:
        print("No students entered.")
        return
    _print_summary(state)

    session_name = _ask("\nSession name (optional): ")
    action = _ask("[s]ave / [c]sv / [j]son / [q]uit: ").lower()
    if action == "s":
        save(state, base_url, session_name)
    elif action == "c":
        with open("students_results.csv", "w", encoding="utf-8") as f:
            f.write(entry_flow.to_csv(state))
        print("✅ students_results.csv")
    elif action == "j":
        with open("students_session.json", "w", encoding="utf-8") as f:
            f.write(entry_flow.to_json(state, session_name))
        print("✅ students_session.json")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else API_BASE_URL)
