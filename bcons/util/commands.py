# SPDX-License-Identifier: MIT
"""Command helpers for bcons build rules.

These helpers are invoked from ninja build rules using Python, so the
rules do not depend on shell utilities behaving the same everywhere.

Usage in build rules:
    python -m bcons.util.commands copy <src> <dest>
    python -m bcons.util.commands concat <src1> <src2> ... <dest>
    python -m bcons.util.commands testmain --style functions <dest> <src>...

testmain writes a C driver that calls every test found in the given
sources and exits non-zero if any of them fails. Two conventions are
understood:

- ``functions``: every ``int test_<name>(void)`` function; a non-zero
  return value means failure.
- ``cases``: every ``BCONS_TEST(<name>)`` block. The project's test
  header is expected to expand the macro to
  ``int bcons_case_<name>(void)``.

The driver runs all tests, or only those named on its command line.
Its entry point is bcons_test_main rather than main.
"""

from __future__ import annotations

import re
import shutil
import sys
from pathlib import Path

TEST_STYLES = ("functions", "cases")

# Entry point of a generated driver. Test executables are linked with
# it as their entry so the tested code may keep its own main().
TEST_ENTRY = "bcons_test_main"

_FUNCTION_TEST = re.compile(r"^\s*int\s+(test_\w+)\s*\(\s*(?:void)?\s*\)\s*\{?\s*$", re.M)
_CASE_TEST = re.compile(r"^\s*BCONS_TEST\s*\(\s*(\w+)\s*\)", re.M)


def helper_command(name: str) -> str:
    """Command prefix that runs helper name with the current interpreter."""
    python_cmd = sys.executable.replace("\\", "/")
    return f"{python_cmd} -m bcons.util.commands {name}"


def copy(src: str, dest: str) -> None:
    """Copy a file or directory, creating parent directories as needed."""
    dest_path = Path(dest)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    if Path(src).is_dir():
        shutil.copytree(src, dest, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dest)


def concat(sources: list[str], dest: str) -> None:
    """Concatenate multiple files into one."""
    dest_path = Path(dest)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    with open(dest_path, "wb") as out:
        for src in sources:
            with open(src, "rb") as f:
                out.write(f.read())


def find_tests(text: str, style: str) -> list[str]:
    """Return the test names declared in source text, in order.

    Examples:
        >>> find_tests("int test_add(void) {\\n}\\n", "functions")
        ['test_add']
        >>> find_tests("BCONS_TEST(parse) {\\n}\\n", "cases")
        ['parse']
    """
    if style == "functions":
        pattern = _FUNCTION_TEST
    elif style == "cases":
        pattern = _CASE_TEST
    else:
        raise ValueError(f"unknown test style: {style}")
    return pattern.findall(text)


def _symbol(name: str, style: str) -> str:
    return name if style == "functions" else f"bcons_case_{name}"


def render_driver(tests: list[str], style: str) -> str:
    """Render the C source of a test driver calling tests."""
    lines = [
        "/* Generated by bcons. Do not edit. */",
        "#include <stdio.h>",
        "#include <string.h>",
        "",
    ]
    for name in tests:
        lines.append(f"int {_symbol(name, style)}(void);")
    lines += [
        "",
        "struct bcons_test { const char *name; int (*run)(void); };",
        "",
        "static const struct bcons_test bcons_tests[] = {",
    ]
    for name in tests:
        lines.append(f'    {{"{name}", {_symbol(name, style)}}},')
    lines += [
        "    {0, 0},",
        "};",
        "",
        "static int bcons_selected(const char *name, int argc, char **argv) {",
        "    int i;",
        "    if (argc < 2) return 1;",
        "    for (i = 1; i < argc; i++) {",
        "        if (strcmp(argv[i], name) == 0) return 1;",
        "    }",
        "    return 0;",
        "}",
        "",
        f"int {TEST_ENTRY}(int argc, char **argv) {{",
        "    const struct bcons_test *t;",
        "    int failures = 0, ran = 0;",
        "    for (t = bcons_tests; t->name; t++) {",
        "        if (!bcons_selected(t->name, argc, argv)) continue;",
        "        ran++;",
        "        if (t->run() != 0) {",
        '            printf("FAIL %s\\n", t->name);',
        "            failures++;",
        "        } else {",
        '            printf("ok   %s\\n", t->name);',
        "        }",
        "    }",
        '    printf("%d of %d tests failed\\n", failures, ran);',
        "    return failures ? 1 : 0;",
        "}",
        "",
    ]
    return "\n".join(lines)


def testmain(style: str, sources: list[str], dest: str) -> None:
    """Scan sources for tests and write the driver to dest."""
    tests: list[str] = []
    for src in sources:
        for name in find_tests(Path(src).read_text(), style):
            if name not in tests:
                tests.append(name)
    dest_path = Path(dest)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    dest_path.write_text(render_driver(tests, style))


def main() -> int:
    """Command-line entry point."""
    if len(sys.argv) < 2:
        print(
            "Usage: python -m bcons.util.commands <command> [args...]", file=sys.stderr
        )
        print("Commands: copy, concat, testmain", file=sys.stderr)
        return 1

    cmd = sys.argv[1]

    if cmd == "copy":
        if len(sys.argv) != 4:
            print(
                "Usage: python -m bcons.util.commands copy <src> <dest>",
                file=sys.stderr,
            )
            return 1
        copy(sys.argv[2], sys.argv[3])
        return 0

    elif cmd == "concat":
        if len(sys.argv) < 4:
            print(
                "Usage: python -m bcons.util.commands concat <src1> [src2...] <dest>",
                file=sys.stderr,
            )
            return 1
        concat(sys.argv[2:-1], sys.argv[-1])
        return 0

    elif cmd == "testmain":
        args = sys.argv[2:]
        if len(args) < 3 or args[0] != "--style" or args[1] not in TEST_STYLES:
            print(
                "Usage: python -m bcons.util.commands testmain "
                "--style functions|cases <dest> [src...]",
                file=sys.stderr,
            )
            return 1
        testmain(args[1], args[3:], args[2])
        return 0

    else:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
