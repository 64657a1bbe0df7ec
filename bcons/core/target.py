# SPDX-License-Identifier: MIT
"""Targets: one buildable unit each.

A Target owns the ScopeChain of the description file that declared it.
Everything it contributes to the build (objects, exported headers,
resources, link flags, test runs) is computed lazily, once, and reused
by every other target that depends on it.

Keys that describe the target itself (SOURCES, TESTS, TEST_SOURCES,
EXPORT, LINK and the CP_* resource categories) are read from the
declaring file only, so nested description files never inherit their
parent's sources or dependencies. Settings such as flags, libraries
and tool names are looked up through the whole chain.

Assembly turns a root target into its final products:

    executable:  obj.<name>/<name>  --codesign-->  bin/<name>
    bundle:      <name>.app/Contents/MacOS/<name>
                 <name>.app/Contents/<category>/...   (copied resources)
                 <name>.app/Contents/_CodeSignature/CodeResources
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, NamedTuple

from bcons.core.action import Rule
from bcons.core.errors import (
    AlreadyAssembledError,
    BconsError,
    UnrecognizedAssetError,
)
from bcons.core.flags import LinkFlags, deduplicate_flags, quote_deferred
from bcons.core.pipeline import Asset
from bcons.core.scope import REFERENCE_SIGIL, ScopeChain, split_value
from bcons.plugins import OBJECT_SUFFIX
from bcons.util.commands import TEST_ENTRY, helper_command
from bcons.util.macos import (
    DEFAULT_BUNDLE_EXTENSION,
    SIGNATURE_PATH,
    bundle_name,
    category_path,
    codesign_flags,
    executable_path,
    is_resource_key,
    tree_files,
)

if TYPE_CHECKING:
    from bcons.core.project import Project
    from bcons.util.source_location import SourceLocation

logger = logging.getLogger(__name__)

# Phony target that runs every test.
TEST_AGGREGATE = "test"

# (key, driver style, executable suffix) of each test convention.
TEST_CONVENTIONS = (
    ("TESTS", "functions", "tests"),
    ("TEST_SOURCES", "cases", "cases"),
)

ASSEMBLY_RULES = (
    Rule(name="copy", command=f"{helper_command('copy')} $in $out", description="COPY $out"),
    Rule(name="link", command="$ld $in $flags -o $out", description="LINK $out"),
    Rule(
        name="codesign",
        command=f"{helper_command('copy')} $in $out && $codesign $flags $out",
        description="CODESIGN $out",
    ),
    Rule(
        name="codesign_bundle",
        command="$codesign $flags $bundle",
        description="CODESIGN $bundle",
    ),
    Rule(name="run", command="$in", description="RUN $in", pool="console"),
    Rule(
        name="relaunch",
        command="(killall $appname 2>/dev/null || true) && open $bundle",
        description="RELAUNCH $bundle",
        pool="console",
    ),
    Rule(
        name="testmain",
        command=f"{helper_command('testmain')} --style $style $out $in",
        description="TESTMAIN $out",
    ),
    Rule(name="test", command="$in && touch $out", description="TEST $in"),
    Rule(name="retest", command="$in", description="RETEST $in", pool="console"),
)


class TargetState(Enum):
    """Assembly progress of a target."""

    UNBUILT = "unbuilt"
    ASSEMBLING = "assembling"
    ASSEMBLED = "assembled"


class ResourceEntry(NamedTuple):
    """A file placed inside a bundle.

    Attributes:
        source: File to copy.
        destination: Bundle-relative destination path.
        dependencies: Extra files the copy must wait for.
    """

    source: Path
    destination: PurePosixPath
    dependencies: tuple[Path, ...] = ()


class Target:
    """A named build target declared by a description file.

    Attributes:
        name: Unique target name.
        scope: Configuration chain of the declaring file.
        description: Path of the declaring file.
        defined_at: Location of the TARGET_NAME declaration.
        state: Assembly state.
    """

    __slots__ = (
        "name",
        "scope",
        "description",
        "defined_at",
        "state",
        "_project",
        "_link_closure",
        "_compile_scope",
        "_own_objects",
        "_include_staging",
        "_staged_headers",
        "_resources",
        "_link_flags",
        "_is_bundle",
        "_test_results",
        "_bundle_manifest",
    )

    def __init__(
        self,
        name: str,
        scope: ScopeChain,
        project: Project,
        *,
        description: Path | None = None,
        defined_at: SourceLocation | None = None,
    ) -> None:
        self.name = name
        self.scope = scope
        self.description = description
        self.defined_at = defined_at
        self.state = TargetState.UNBUILT
        self._project = project
        # Lazily computed; None means "not computed yet".
        self._link_closure: list[str] | None = None
        self._compile_scope: ScopeChain | None = None
        self._own_objects: list[Path] | None = None
        self._include_staging: Path | None = None
        self._staged_headers: list[Path] | None = None
        self._resources: list[ResourceEntry] | None = None
        self._link_flags: LinkFlags | None = None
        self._is_bundle: bool | None = None
        self._test_results: list[Path] | None = None
        self._bundle_manifest: list[ResourceEntry] | None = None

    # Declared values

    def own_keys(self) -> list[str]:
        """Keys declared by this target's own description."""
        leaf = self.scope.leaf
        return list(leaf.values) if leaf is not None else []

    def resource_keys(self) -> list[str]:
        return [key for key in self.own_keys() if is_resource_key(key)]

    def own_list(self, key: str) -> list[str]:
        """Word-split value of key in this target's own description."""
        leaf = self.scope.leaf
        if leaf is None or key not in leaf.values:
            return []
        return split_value(leaf.values[key], leaf.location(key))

    def link_names(self) -> list[str]:
        """Names listed in LINK, without sigil, self and duplicates."""
        names: list[str] = []
        for token in self.own_list("LINK"):
            name = token.removeprefix(REFERENCE_SIGIL)
            if name != self.name and name not in names:
                names.append(name)
        return names

    def embedded_names(self) -> list[str]:
        """Targets referenced from CP_* lists, in declaration order."""
        names: list[str] = []
        for key in self.resource_keys():
            for name in self.scope.glob_list(key, inherit=False).references:
                if name not in names:
                    names.append(name)
        return names

    @property
    def target_dir(self) -> Path:
        """Intermediate directory, <build>/obj.<name>."""
        return self._project.build_dir / f"obj.{self.name}"

    # Dependencies

    def link_closure(self) -> list[str]:
        """Names of every target reachable through LINK, sorted, self excluded."""
        if self._link_closure is not None:
            return self._link_closure

        seen: set[str] = {self.name}
        queue = [self.name]
        while queue:
            current = self._project.target(queue.pop(0))
            for name in current.link_names():
                if name not in seen:
                    seen.add(name)
                    queue.append(name)
        seen.discard(self.name)
        self._link_closure = sorted(seen)
        return self._link_closure

    def closure_targets(self) -> list[Target]:
        return [self._project.target(name) for name in self.link_closure()]

    # Headers and objects

    def include_staging(self) -> Path:
        """Stage EXPORT headers and return the include root for dependents.

        Each exported header is copied to
        <build>/obj.<name>/include/<name>/<header>, so dependents write
        ``#include <name/header.h>``.
        """
        if self._include_staging is not None:
            return self._include_staging

        root = self.target_dir / "include"
        staged: list[Path] = []
        for header in self.scope.glob_list("EXPORT", inherit=False).paths:
            destination = root / self.name / header.name
            self._project.graph.add_action("copy", [destination], [header])
            staged.append(destination)
        self._staged_headers = staged
        self._include_staging = root
        return root

    def staged_headers(self) -> list[Path]:
        self.include_staging()
        assert self._staged_headers is not None
        return self._staged_headers

    def exports_headers(self) -> bool:
        return self.scope.leaf is not None and "EXPORT" in self.scope.leaf.values

    def compile_scope(self) -> ScopeChain:
        """Scope for this target's sources, with exported headers visible."""
        if self._compile_scope is not None:
            return self._compile_scope

        includes: list[str] = []
        headers: list[str] = []
        for target in [self, *self.closure_targets()]:
            if not target.exports_headers():
                continue
            includes.append(str(target.include_staging()))
            headers.extend(str(h) for h in target.staged_headers())
        self._compile_scope = self.scope.derive(
            {"STAGED_INCLUDES": tuple(includes), "STAGED_HEADERS": tuple(headers)}
        )
        return self._compile_scope

    def compile_sources(self, key: str, scope: ScopeChain) -> list[Path]:
        """Run the files listed under key through the pipeline into objects.

        Raises:
            UnrecognizedAssetError: If a file does not end up as an object.
        """
        objects: list[Path] = []
        for path in self.scope.glob_list(key, inherit=False).paths:
            for terminal in self._project.pipeline.run(Asset(path, scope)):
                if terminal.path.suffix != OBJECT_SUFFIX:
                    raise UnrecognizedAssetError(
                        self.name, terminal.path, self.scope.location(key)
                    )
                objects.append(terminal.path)
        return objects

    def own_objects(self) -> list[Path]:
        """Object files compiled from this target's own SOURCES."""
        if self._own_objects is None:
            self._own_objects = self.compile_sources("SOURCES", self.compile_scope())
        return self._own_objects

    def closure_objects(self) -> list[Path]:
        """Objects of self followed by every target in the link closure."""
        objects = list(self.own_objects())
        for target in self.closure_targets():
            objects.extend(target.own_objects())
        return objects

    # Resources

    def resources(self) -> list[ResourceEntry]:
        """Files this target contributes to a bundle.

        Raises:
            BconsError: If an embedded target has not been assembled.
        """
        if self._resources is not None:
            return self._resources

        pipeline = self._project.pipeline
        entries: dict[PurePosixPath, ResourceEntry] = {}

        def add(entry: ResourceEntry) -> None:
            existing = entries.get(entry.destination)
            if existing is not None:
                logger.warning(
                    "%s: %s is staged from both %s and %s; keeping the first",
                    self.name,
                    entry.destination,
                    existing.source,
                    entry.source,
                )
                return
            entries[entry.destination] = entry

        for key in self.resource_keys():
            category = category_path(key)
            listed = self.scope.glob_list(key, inherit=False)
            for path in listed.paths:
                if path.is_dir() and pipeline.select(path) is None:
                    for file in tree_files(path):
                        folder = PurePosixPath(file.relative_to(path.parent).parent.as_posix())
                        for terminal in pipeline.run(Asset(file, self.scope)):
                            add(ResourceEntry(terminal.path, category / folder / terminal.path.name))
                else:
                    for terminal in pipeline.run(Asset(path, self.scope)):
                        add(ResourceEntry(terminal.path, category / terminal.path.name))
            for name in listed.references:
                embedded = self._project.target(name)
                for entry in embedded.bundle_manifest():
                    add(entry._replace(destination=category / entry.destination))

        self._resources = list(entries.values())
        return self._resources

    def is_bundle(self) -> bool:
        """True if self or a linked target declares a resource category."""
        if self._is_bundle is None:
            self._is_bundle = any(
                target.resource_keys() for target in [self, *self.closure_targets()]
            )
        return self._is_bundle

    # Linking

    def link_flags(self) -> LinkFlags:
        """Libraries, frameworks and linker flags of self and the closure."""
        if self._link_flags is not None:
            return self._link_flags

        result = LinkFlags()
        frameworks: list[str] = []
        raw: list[str] = []
        for target in [self, *self.closure_targets()]:
            scope = target.scope
            for value, declaring in scope.entries("LIBS"):
                for token in split_value(value, declaring.location("LIBS")):
                    self._add_library(result, token, declaring.directory)
            for framework in scope.get_list("FRAMEWORKS"):
                frameworks += ["-framework", framework]
            raw.extend(scope.get_list("LN_FLAGS"))

        result.frameworks = deduplicate_flags(frameworks)
        result.flags = [quote_deferred(f) for f in deduplicate_flags(raw)]
        self._link_flags = result
        return result

    @staticmethod
    def _add_library(result: LinkFlags, token: str, directory: Path | None) -> None:
        def resolve(text: str) -> str:
            path = Path(text).expanduser()
            if directory is not None and not path.is_absolute():
                path = directory / path
            return str(path)

        if token.endswith(".a"):
            archive = resolve(token)
            if archive not in result.static_archives:
                result.static_archives.append(archive)
            return
        if token.startswith("-l"):
            library = token
        elif "/" in token or token.endswith((".dylib", ".tbd")):
            library = resolve(token)
        else:
            library = f"-l{token}"
        library = quote_deferred(library)
        if library not in result.dynamic_libs:
            result.dynamic_libs.append(library)

    def _link(self, output: Path, objects: list[Path], extra: list[str] | None = None) -> None:
        flags = self.link_flags()
        args = [*flags.dynamic_libs, *flags.frameworks, *flags.flags, *(extra or [])]
        min_version = self.scope.get_str("MIN_MACOS_VERSION")
        if min_version:
            args.append(f"-mmacosx-version-min={min_version}")
        self._project.graph.add_action(
            "link",
            [output],
            [*objects, *flags.static_archives],
            variables={
                "ld": self.scope.get_str("CXX", "clang++"),
                "flags": " ".join(args),
            },
        )

    def _codesign_variables(self) -> tuple[dict[str, str], list[Path]]:
        entitlements = self.scope.get_path("CS_ENTITLEMENTS")
        variables = {
            "codesign": self.scope.get_str("CODESIGN", "codesign"),
            "flags": codesign_flags(
                self.scope.get_str("CODESIGN_IDENTITY", "-"),
                entitlements,
                self.scope.accumulate("CODESIGN_FLAGS"),
            ),
        }
        return variables, [entitlements] if entitlements is not None else []

    # Tests

    def test_results(self) -> list[Path]:
        """Result files of the cached test runs, one per test convention."""
        if self._test_results is not None:
            return self._test_results

        graph = self._project.graph
        results: list[Path] = []
        for key, style, suffix in TEST_CONVENTIONS:
            sources = self.scope.glob_list(key, inherit=False).paths
            if not sources:
                continue

            exe_name = f"{self.name}_{suffix}"
            scope = self.compile_scope().derive({"FLAGS": "-DBCONS_TESTING=1"})
            driver = self.target_dir / f"{exe_name}.main.c"
            graph.add_action("testmain", [driver], sources, variables={"style": style})

            objects: list[Path] = []
            for terminal in self._project.pipeline.run(Asset(driver, scope)):
                objects.append(terminal.path)
            objects += self.compile_sources(key, scope)
            objects += self.closure_objects()

            executable = self.target_dir / exe_name
            self._link(executable, objects, [f"-Wl,-e,_{TEST_ENTRY}"])

            passed = executable.with_name(f"{exe_name}.passed")
            graph.add_action("test", [passed], [executable])
            graph.add_action(
                "retest", [self._project.build_dir / f"retest_{exe_name}"], [executable]
            )
            results.append(passed)

        if results:
            graph.add_aggregate(f"test_{self.name}", results)
            graph.add_aggregate(TEST_AGGREGATE, results)
        self._test_results = results
        return results

    # Assembly

    def assemble(self) -> Path:
        """Declare the link, sign, package and test actions of this target.

        Returns:
            The path standing for the finished product: the signed
            executable, or the bundle's signature.

        Raises:
            AlreadyAssembledError: If called more than once.
        """
        if self.state is not TargetState.UNBUILT:
            raise AlreadyAssembledError(self.name)
        self.state = TargetState.ASSEMBLING
        logger.info("assembling %s", self.name)

        objects = self.closure_objects()
        if self.is_bundle():
            product = self._assemble_bundle(objects)
        else:
            product = self._assemble_executable(objects)
        self._project.graph.add_aggregate(self.name, [product])
        self.test_results()

        self.state = TargetState.ASSEMBLED
        return product

    def _assemble_executable(self, objects: list[Path]) -> Path:
        graph = self._project.graph
        linked = self.target_dir / self.name
        self._link(linked, objects)

        signed = self._project.build_dir / "bin" / self.name
        variables, implicit = self._codesign_variables()
        graph.add_action("codesign", [signed], [linked], implicit=implicit, variables=variables)
        graph.add_action("run", [self._project.build_dir / f"run_{self.name}"], [signed])

        self._bundle_manifest = [ResourceEntry(signed, PurePosixPath(self.name))]
        return signed

    def bundle_extension(self) -> str:
        return self.scope.get_str("BUNDLE_EXTENSION", DEFAULT_BUNDLE_EXTENSION).lstrip(".")

    def _assemble_bundle(self, objects: list[Path]) -> Path:
        graph = self._project.graph
        extension = self.bundle_extension()
        bundle = bundle_name(self.name, extension)
        bundle_dir = self._project.build_dir / bundle

        entries: dict[PurePosixPath, ResourceEntry] = {}
        for target in [self, *self.closure_targets()]:
            for entry in target.resources():
                if entry.destination in entries:
                    logger.warning(
                        "%s: %s already staged from %s; ignoring %s",
                        self.name,
                        entry.destination,
                        entries[entry.destination].source,
                        entry.source,
                    )
                    continue
                entries[entry.destination] = entry

        staged: list[tuple[Path, PurePosixPath]] = []
        for entry in entries.values():
            destination = bundle_dir / entry.destination
            graph.add_action(
                "copy", [destination], [entry.source], implicit=entry.dependencies
            )
            staged.append((destination, entry.destination))

        executable = bundle_dir / executable_path(self.name)
        self._link(executable, objects)

        signature = bundle_dir / SIGNATURE_PATH
        variables, implicit = self._codesign_variables()
        variables["bundle"] = str(bundle_dir)
        graph.add_action(
            "codesign_bundle",
            [signature],
            [executable],
            implicit=[*(path for path, _ in staged), *implicit],
            variables=variables,
        )

        if extension == DEFAULT_BUNDLE_EXTENSION:
            graph.add_action(
                "relaunch",
                [self._project.build_dir / f"relaunch_{self.name}"],
                [signature],
                variables={"appname": self.name, "bundle": str(bundle_dir)},
            )

        top = PurePosixPath(bundle)
        manifest = [
            ResourceEntry(path, top / destination, (signature,))
            for path, destination in staged
        ]
        manifest.append(ResourceEntry(executable, top / executable_path(self.name), (signature,)))
        manifest.append(ResourceEntry(signature, top / SIGNATURE_PATH))
        self._bundle_manifest = manifest
        return signature

    def bundle_manifest(self) -> list[ResourceEntry]:
        """Entries another bundle copies to embed this target's product.

        Raises:
            BconsError: If the target has not been assembled yet.
        """
        if self.state is not TargetState.ASSEMBLED or self._bundle_manifest is None:
            raise BconsError(
                f"target '{self.name}' is embedded before it was assembled",
                self.defined_at,
            )
        return self._bundle_manifest

    def __repr__(self) -> str:
        return f"Target({self.name!r}, {self.state.value})"
