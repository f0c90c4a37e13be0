#!/usr/bin/env python3
"""
Скрипт проверки проекта http-request-core.

Запускает:
- black --check
- ruff
- mypy (кроме --fast)
- pytest: unit всегда, integration (локальные сокеты и TLS сервер) кроме --fast

Usage:
    python scripts/check.py
    python scripts/check.py --fast  # Без mypy и integration тестов
    python scripts/check.py --fix   # black и ruff --fix
"""

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List, Tuple

GREEN = '\033[92m'
RED = '\033[91m'
YELLOW = '\033[93m'
BOLD = '\033[1m'
END = '\033[0m'


def run(command: List[str], title: str) -> bool:
    """Запустить команду; отсутствующий инструмент считается пропуском."""
    print(f"\n{BOLD}▶ {title}{END}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, encoding='utf-8', errors='ignore')
    except FileNotFoundError:
        print(f"{YELLOW}⚠ {command[0]} не установлен - пропуск{END}")
        return True

    if result.returncode == 0:
        print(f"{GREEN}✓ OK{END}")
        return True

    print(f"{RED}✗ FAILED{END}")
    print((result.stdout + result.stderr)[-2000:])
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description="Проверка качества кода")
    parser.add_argument("--fast", action="store_true", help="Без mypy и integration тестов")
    parser.add_argument("--fix", action="store_true", help="Автоматические исправления")
    parser.add_argument("--skip-tests", action="store_true", help="Только линтеры")
    args = parser.parse_args()

    root = Path(__file__).parent.parent
    paths = [str(root / "src"), str(root / "tests")]

    steps: List[Tuple[str, List[str]]] = [
        ("black", ["black", *paths] if args.fix else ["black", "--check", *paths]),
        ("ruff", ["ruff", "check", *paths] + (["--fix"] if args.fix else [])),
    ]
    if not args.fast:
        steps.append(("mypy", ["mypy", str(root / "src" / "http_request")]))
    if not args.skip_tests:
        pytest_command = ["pytest", "-q", str(root / "tests")]
        if args.fast:
            pytest_command += ["-m", "not integration"]
        steps.append(("pytest", pytest_command))

    results = [(name, run(command, name)) for name, command in steps]

    print(f"\n{BOLD}{'=' * 40}{END}")
    for name, ok in results:
        color = GREEN if ok else RED
        print(f"{color}{'✓ PASSED' if ok else '✗ FAILED':10}{END} {name}")

    return 0 if all(ok for _, ok in results) else 1


if __name__ == "__main__":
    sys.exit(main())
