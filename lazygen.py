"""Lazy evaluation wrapper generator.

Generates, for a set of named types, one source file with a thread-safe
lazily evaluated wrapper per type: a constructor that adapts a zero-argument
supplier into a memoized supplier whose underlying function runs at most
once, even under concurrent first access.

Go output is the default and is canonicalized with gofmt. Python output is
validated by compiling it.

Usage:
    lazygen [-package NAME] [-out FILE] [--lang go] [NAME TYPE]...
    lazygen --list-types --lang python
"""

import argparse
import contextlib
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import TextIO

DEFAULT_PACKAGE = "lazy"
DEFAULT_LANGUAGE = "go"
DEFAULT_GOFMT = "gofmt"
GENERATED_MARKER = "Code generated by lazygen. DO NOT EDIT."
USAGE = "lazygen [-package=<pkg>] [-out=<file>] [--lang=<lang>] [<name> <type>]..."


# ===--- Errors ---=== #


VALID_ERROR_CODES = {
    "USAGE",
    "DESTINATION",
    "TEMPLATE",
    "FORMAT",
    "WRITE",
}


class GenerateError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown generate error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


# ===--- Data model ---=== #


@dataclass(frozen=True)
class TypeEntry:
    """One wrapper to generate.

    Attributes:
        name: Identifier fragment used for the constructor name and, with a
            language-specific prefix, the private wrapper type name.
        type_expr: Type expression in the target language, inserted verbatim.
    """

    name: str
    type_expr: str


@dataclass(frozen=True)
class GenerationRequest:
    package: str
    entries: tuple[TypeEntry, ...]
    language: str


# ===--- Type catalogs ---=== #


GO_CATALOG: tuple[TypeEntry, ...] = (
    TypeEntry("Bool", "bool"),
    TypeEntry("Byte", "byte"),
    TypeEntry("Complex64", "complex64"),
    TypeEntry("Complex128", "complex128"),
    TypeEntry("Float32", "float32"),
    TypeEntry("Float64", "float64"),
    TypeEntry("Error", "error"),
    TypeEntry("Int", "int"),
    TypeEntry("Int8", "int8"),
    TypeEntry("Int16", "int16"),
    TypeEntry("Int32", "int32"),
    TypeEntry("Int64", "int64"),
    TypeEntry("Interface", "interface{}"),
    TypeEntry("Rune", "rune"),
    TypeEntry("String", "string"),
    TypeEntry("Uint", "uint"),
    TypeEntry("Uint8", "uint8"),
    TypeEntry("Uint16", "uint16"),
    TypeEntry("Uint32", "uint32"),
    TypeEntry("Uint64", "uint64"),
    TypeEntry("Uintptr", "uintptr"),
)
"""Go builtin types plus interface{}, in emission order."""

PYTHON_CATALOG: tuple[TypeEntry, ...] = (
    TypeEntry("Bool", "bool"),
    TypeEntry("Bytes", "bytes"),
    TypeEntry("ByteArray", "bytearray"),
    TypeEntry("Complex", "complex"),
    TypeEntry("Float", "float"),
    TypeEntry("Error", "BaseException"),
    TypeEntry("Int", "int"),
    TypeEntry("Object", "object"),
    TypeEntry("String", "str"),
)
"""Python builtin value types plus object, in emission order."""


# ===--- Templates ---=== #

# Templates are written in the formatter's canonical layout so that the
# formatting pass is a no-op for well-formed entries.

GO_DOCUMENT = Template(
    """\
// $marker

package $package

import (
	"sync"
	"sync/atomic"
)

$blocks
"""
)

GO_BLOCK = Template(
    """\
// lazy$name implements lazy evaluation for $type.
type lazy$name struct {
	v $type
	f func() $type
	m sync.Mutex
	o uint32
}

func (v *lazy$name) Get() $type {
	if atomic.LoadUint32(&v.o) == 1 {
		return v.v
	}

	v.m.Lock()
	defer v.m.Unlock()

	if v.o == 0 {
		v.v = v.f()
		v.f = nil
		atomic.StoreUint32(&v.o, 1)
	}
	return v.v
}

// $name provides lazy evaluation for $type. f is called exactly
// once, when the result is first used.
func $name(f func() $type) func() $type {
	return (&lazy$name{f: f}).Get
}"""
)

PYTHON_DOCUMENT = Template(
    '''\
# $marker

"""Lazily evaluated values for package $package."""

from __future__ import annotations

import threading
from collections.abc import Callable

__all__ = [
$exports
]


$blocks
'''
)

PYTHON_BLOCK = Template(
    '''\
class _Lazy$name:
    """_Lazy$name implements lazy evaluation for $type."""

    __slots__ = ("_value", "_func", "_lock", "_ready")

    def __init__(self, func: Callable[[], $type]) -> None:
        self._value = None
        self._func = func
        self._lock = threading.Lock()
        self._ready = threading.Event()

    def get(self) -> $type:
        if self._ready.is_set():
            return self._value

        with self._lock:
            if not self._ready.is_set():
                self._value = self._func()
                self._func = None
                self._ready.set()
        return self._value


def $name(func: Callable[[], $type]) -> Callable[[], $type]:
    """$name provides lazy evaluation for $type.

    func is called exactly once, when the result is first used.
    """
    return _Lazy$name(func).get'''
)


@dataclass(frozen=True)
class TargetLanguage:
    """Everything needed to emit and check one target language.

    Attributes:
        name: CLI value for --lang.
        catalog: Fallback entries when no NAME TYPE pairs are given.
        document: Whole-file skeleton. Slots: marker, package, blocks, exports.
        block: Per-entry skeleton. Slots: name, type.
        block_separator: Text placed between consecutive blocks.
    """

    name: str
    catalog: tuple[TypeEntry, ...]
    document: Template
    block: Template
    block_separator: str


LANGUAGES: dict[str, TargetLanguage] = {
    "go": TargetLanguage(
        name="go",
        catalog=GO_CATALOG,
        document=GO_DOCUMENT,
        block=GO_BLOCK,
        block_separator="\n\n",
    ),
    "python": TargetLanguage(
        name="python",
        catalog=PYTHON_CATALOG,
        document=PYTHON_DOCUMENT,
        block=PYTHON_BLOCK,
        block_separator="\n\n\n",
    ),
}


def get_language(name: str) -> TargetLanguage:
    try:
        return LANGUAGES[name]
    except KeyError:
        raise GenerateError(
            "USAGE",
            f"Unsupported target language: {name}",
            f"Use one of: {', '.join(sorted(LANGUAGES))}.",
        ) from None


def catalog_for(language: str) -> tuple[TypeEntry, ...]:
    return get_language(language).catalog


# ===--- Template engine ---=== #


def _substitute(template: Template, mapping: dict[str, str], what: str) -> str:
    try:
        return template.substitute(mapping)
    except (KeyError, ValueError) as err:
        raise GenerateError(
            "TEMPLATE",
            f"Template expansion failed for {what}: {err!r}",
        ) from err


def render_block(entry: TypeEntry, language: str) -> str:
    """Expand the per-entry skeleton for one TypeEntry.

    Returns the block without a trailing newline.

    Raises:
        GenerateError: TEMPLATE if the skeleton references an unknown slot.
    """
    lang = get_language(language)
    mapping = {"name": entry.name, "type": entry.type_expr}
    return _substitute(lang.block, mapping, f"{entry.name} ({entry.type_expr})")


def render_source(request: GenerationRequest) -> str:
    """Render the complete, unformatted source document for a request.

    Blocks are emitted in request.entries order. Output is a pure function
    of the request: no timestamps, no environment-dependent content.

    Raises:
        GenerateError: TEMPLATE on an internal skeleton error.
    """
    lang = get_language(request.language)
    blocks = [render_block(entry, request.language) for entry in request.entries]
    exports = "\n".join(f'    "{entry.name}",' for entry in request.entries)
    mapping = {
        "marker": GENERATED_MARKER,
        "package": request.package,
        "blocks": lang.block_separator.join(blocks),
        "exports": exports,
    }
    return _substitute(lang.document, mapping, f"package {request.package}")


# ===--- Formatter adapter ---=== #


def format_go(source: str, gofmt: str = DEFAULT_GOFMT) -> str:
    """Canonicalize Go source through gofmt (stdin to stdout).

    Raises:
        GenerateError: FORMAT if gofmt rejects the source or cannot be run.
    """
    try:
        result = subprocess.run(
            [gofmt],
            input=source,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as err:
        raise GenerateError(
            "FORMAT",
            f"Cannot run Go formatter {gofmt!r}: {err}",
            "Install the Go toolchain or pass --gofmt /path/to/gofmt.",
        ) from err

    if result.returncode != 0:
        raise GenerateError("FORMAT", result.stderr.strip() or "gofmt failed")
    return result.stdout


def format_python(source: str) -> str:
    """Validate Python source by compiling it; layout is left as emitted.

    Trailing whitespace is stripped per line and the text ends with exactly
    one newline.

    Raises:
        GenerateError: FORMAT on a syntax error.
    """
    try:
        compile(source, "<lazygen>", "exec", dont_inherit=True)
    except SyntaxError as err:
        raise GenerateError(
            "FORMAT",
            f"line {err.lineno}: {err.msg}",
            "Check that every NAME is an identifier and every TYPE a valid annotation.",
        ) from err

    lines = [line.rstrip() for line in source.splitlines()]
    return "\n".join(lines).rstrip("\n") + "\n"


def format_source(source: str, language: str, gofmt: str = DEFAULT_GOFMT) -> str:
    get_language(language)
    if language == "go":
        return format_go(source, gofmt)
    return format_python(source)


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    package: str
    entries: tuple[TypeEntry, ...]
    language: str
    output: Path | None
    gofmt: str = DEFAULT_GOFMT


@dataclass(frozen=True)
class DiscoveryConfig:
    language: str


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazygen",
        description="Generate thread-safe lazy evaluation wrappers for types",
    )

    parser.add_argument(
        "-package",
        "--package",
        dest="package",
        type=str,
        default=DEFAULT_PACKAGE,
        help="package the generated file should be in",
    )
    parser.add_argument(
        "-out",
        "--out",
        dest="out",
        type=Path,
        default=None,
        help="where to write the output (defaults to stdout)",
    )
    parser.add_argument(
        "--lang",
        type=str,
        choices=sorted(LANGUAGES),
        default=DEFAULT_LANGUAGE,
    )
    parser.add_argument("--gofmt", type=str, default=DEFAULT_GOFMT)
    parser.add_argument("--list-types", action="store_true", default=False)
    parser.add_argument("pairs", nargs="*", metavar="PAIR", help="NAME TYPE pairs")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def pair_arguments(args: list[str] | tuple[str, ...]) -> tuple[TypeEntry, ...]:
    """Pair positional arguments into entries, keeping their order.

    Raises:
        GenerateError: USAGE if the argument count is odd.
    """
    if len(args) % 2 != 0:
        raise GenerateError(
            "USAGE",
            f"Expected NAME TYPE pairs, got {len(args)} arguments.",
            f"Usage: {USAGE}",
        )
    return tuple(
        TypeEntry(name=args[i], type_expr=args[i + 1]) for i in range(0, len(args), 2)
    )


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    get_language(args.lang)

    if args.list_types:
        if args.pairs or args.out is not None:
            raise GenerateError(
                "USAGE",
                "--list-types does not generate output.",
                "Remove NAME TYPE pairs and -out, or drop --list-types.",
            )
        return DiscoveryConfig(language=args.lang)

    return GenerateConfig(
        package=args.package,
        entries=pair_arguments(args.pairs),
        language=args.lang,
        output=args.out,
        gofmt=args.gofmt,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Driver ---=== #


@dataclass(frozen=True)
class GenerationResult:
    """What one run wrote.

    Attributes:
        language: Target language name.
        package: Package declared in the output.
        entry_count: Number of wrapper blocks emitted.
        output: File written, or None when the sink was standard output.
        line_count: Number of newline characters in the written text.
        byte_count: Number of UTF-8 bytes written.
    """

    language: str
    package: str
    entry_count: int
    output: Path | None
    line_count: int
    byte_count: int


def build_request(config: GenerateConfig) -> GenerationRequest:
    """Build the request, falling back to the catalog when no pairs are given."""
    entries = config.entries or catalog_for(config.language)
    return GenerationRequest(
        package=config.package,
        entries=tuple(entries),
        language=config.language,
    )


def open_destination(
    output: Path | None, stdout: TextIO
) -> contextlib.AbstractContextManager[TextIO]:
    """Open the output sink.

    A file destination is created (or truncated) immediately. Standard
    output is wrapped so that leaving the context does not close it.

    Raises:
        GenerateError: DESTINATION if the file cannot be opened.
    """
    if output is None:
        return contextlib.nullcontext(stdout)
    try:
        return Path(output).open("w", encoding="utf-8", newline="\n")
    except OSError as err:
        raise GenerateError(
            "DESTINATION",
            f"Cannot open output file {output}: {err.strerror or err}",
        ) from err


def run_generate(
    config: GenerateConfig, stdout: TextIO | None = None
) -> GenerationResult:
    """Run the generation pipeline for a GenerateConfig.

    Order: build request -> open destination -> render -> format -> write.
    The destination is opened before generation, but nothing is written to
    it unless formatting succeeded. The destination is closed on every path.

    Args:
        config: Validated GenerateConfig from build_config.
        stdout: Sink used when config.output is None. Defaults to sys.stdout.

    Returns:
        GenerationResult describing what was written.

    Raises:
        GenerateError: DESTINATION, TEMPLATE, FORMAT or WRITE.
    """
    request = build_request(config)
    sink = sys.stdout if stdout is None else stdout

    with open_destination(config.output, sink) as out:
        source = render_source(request)
        formatted = format_source(source, request.language, gofmt=config.gofmt)
        try:
            out.write(formatted)
            out.flush()
        except OSError as err:
            raise GenerateError("WRITE", f"Cannot write output: {err}") from err

    return GenerationResult(
        language=request.language,
        package=request.package,
        entry_count=len(request.entries),
        output=config.output,
        line_count=formatted.count("\n"),
        byte_count=len(formatted.encode("utf-8")),
    )


def format_generation_summary(result: GenerationResult) -> str:
    return (
        f"Generated lazy wrappers: {result.entry_count} "
        f"({result.language}, package {result.package}) -> {result.output}"
    )


# ===--- Discovery ---=== #


def format_catalog_table(language: str) -> str:
    """Render the built-in catalog for a language as a two-column table.

    Output format:
        Built-in go types (21):

          Name          Type
          Bool          bool
          ...

    Returns a string with exactly one trailing newline.
    """
    catalog = catalog_for(language)
    width = max(len("Name"), *(len(entry.name) for entry in catalog)) + 2
    lines = [f"Built-in {language} types ({len(catalog)}):", ""]
    lines.append(f"  {'Name':<{width}}Type")
    for entry in catalog:
        lines.append(f"  {entry.name:<{width}}{entry.type_expr}")
    return "\n".join(lines) + "\n"


def run_discovery(config: DiscoveryConfig) -> None:
    print(format_catalog_table(config.language), end="")


# ===--- Main ---=== #


def _report(err: GenerateError) -> None:
    print(f"Error [{err.code}]: {err.message}", file=sys.stderr)
    if err.suggestion:
        print(f"Hint: {err.suggestion}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except GenerateError as err:
        _report(err)
        raise SystemExit(1) from err

    if isinstance(config, DiscoveryConfig):
        run_discovery(config)
        return

    try:
        result = run_generate(config)
    except GenerateError as err:
        _report(err)
        raise SystemExit(1) from err

    if result.output is not None:
        print(format_generation_summary(result))


if __name__ == "__main__":
    main()
