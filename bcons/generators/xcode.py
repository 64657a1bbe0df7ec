# SPDX-License-Identifier: MIT
"""Xcode project generator.

Generates an .xcodeproj bundle from a bcons Project so the sources can
be browsed, indexed and debugged in Xcode. Ninja remains the build
tool; the Xcode project mirrors targets, sources, search paths, flags
and LINK dependencies.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pbxproj import XcodeProject
from pbxproj.pbxextensions.ProjectFiles import FileOptions
from pbxproj.PBXGenericObject import PBXGenericObject

from bcons.generators.generator import BaseGenerator
from bcons.plugins.compile import include_dirs
from bcons.util.macos import DEFAULT_BUNDLE_EXTENSION

if TYPE_CHECKING:
    from bcons.core.project import Project
    from bcons.core.target import Target

logger = logging.getLogger(__name__)

APPLICATION = "com.apple.product-type.application"
BUNDLE = "com.apple.product-type.bundle"
TOOL = "com.apple.product-type.tool"
STATIC_LIBRARY = "com.apple.product-type.library.static"

# Map product types to explicit file types
EXPLICIT_FILE_TYPE_MAP = {
    APPLICATION: "wrapper.application",
    BUNDLE: "wrapper.cfbundle",
    TOOL: "compiled.mach-o.executable",
    STATIC_LIBRARY: "archive.ar",
}

DEFAULT_DEPLOYMENT_TARGET = "13.0"


def _generate_id() -> str:
    """Generate a 24-character hex ID like Xcode uses."""
    return uuid.uuid4().hex[:24].upper()


class XcodeGenerator(BaseGenerator):
    """Generator that produces Xcode project files.

    Example:
        generator = XcodeGenerator()
        generator.generate(project, Path("build"))
        # Creates build/<root dir name>.xcodeproj/
    """

    def __init__(self, project_name: str | None = None) -> None:
        super().__init__("xcode", "project.pbxproj")
        self._project_name = project_name
        self._xcode_project: XcodeProject | None = None
        self._output_dir: Path | None = None
        self._project_root: Path | None = None
        self._target_ids: dict[str, str] = {}  # bcons target name -> Xcode target id
        self._topdir: str = ".."  # Relative path from output_dir to project root

    def product_type(self, target: Target, is_root: bool) -> str:
        """Xcode product type of a target."""
        if not is_root:
            return STATIC_LIBRARY
        if target.is_bundle():
            if target.bundle_extension() == DEFAULT_BUNDLE_EXTENSION:
                return APPLICATION
            return BUNDLE
        return TOOL

    def generate(self, project: Project, output_dir: Path) -> Path:
        """Generate .xcodeproj bundle.

        Args:
            project: Project to export.
            output_dir: Directory to write .xcodeproj to.

        Returns:
            Path of the written project.pbxproj.
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        self._output_dir = output_dir.resolve()
        self._project_root = project.root_dir.resolve()
        self._target_ids = {}
        self._topdir = os.path.relpath(self._project_root, self._output_dir)

        name = self._project_name or project.root_dir.name or "bcons"
        xcodeproj_path = output_dir / f"{name}.xcodeproj"
        xcodeproj_path.mkdir(parents=True, exist_ok=True)
        pbxproj_path = xcodeproj_path / self.output_filename

        tree = self._create_project_tree(project)
        self._xcode_project = XcodeProject(tree, str(pbxproj_path))

        for target in project.targets:
            self._add_sources_to_target(target)
            self._configure_build_settings(target, project)
        for target in project.targets:
            self._setup_dependencies(target)

        self._xcode_project.save()
        logger.info("wrote %s", xcodeproj_path)
        return pbxproj_path

    def _create_project_tree(self, project: Project) -> dict[str, Any]:
        """Create the base Xcode project tree structure."""
        proj_id = _generate_id()
        main_group_id = _generate_id()
        products_group_id = _generate_id()
        proj_config_list_id = _generate_id()
        proj_debug_config_id = _generate_id()
        proj_release_config_id = _generate_id()

        objects: dict[str, dict[str, Any]] = {}
        roots = {t.name for t in project.target_graph.roots()}
        product_refs: list[str] = []
        for target in project.targets:
            target_id, product_ref = self._create_target_objects(
                target, self.product_type(target, target.name in roots), objects
            )
            self._target_ids[target.name] = target_id
            product_refs.append(product_ref)

        # SYMROOT = "." keeps products directly in the output directory
        common = {
            "ALWAYS_SEARCH_USER_PATHS": "NO",
            "CLANG_CXX_LIBRARY": "libc++",
            "MACOSX_DEPLOYMENT_TARGET": DEFAULT_DEPLOYMENT_TARGET,
            "SDKROOT": "macosx",
            "SYMROOT": ".",
        }
        objects[proj_debug_config_id] = {
            "isa": "XCBuildConfiguration",
            "buildSettings": {**common, "GCC_OPTIMIZATION_LEVEL": "0"},
            "name": "Debug",
        }
        objects[proj_release_config_id] = {
            "isa": "XCBuildConfiguration",
            "buildSettings": {**common, "GCC_OPTIMIZATION_LEVEL": "s"},
            "name": "Release",
        }
        objects[proj_config_list_id] = {
            "isa": "XCConfigurationList",
            "buildConfigurations": [proj_debug_config_id, proj_release_config_id],
            "defaultConfigurationIsVisible": "0",
            "defaultConfigurationName": "Release",
        }

        objects[products_group_id] = {
            "isa": "PBXGroup",
            "children": product_refs,
            "name": "Products",
            "sourceTree": "<group>",
        }
        objects[main_group_id] = {
            "isa": "PBXGroup",
            "children": [products_group_id],
            "sourceTree": "<group>",
        }
        objects[proj_id] = {
            "isa": "PBXProject",
            "buildConfigurationList": proj_config_list_id,
            "compatibilityVersion": "Xcode 14.0",
            "developmentRegion": "en",
            "hasScannedForEncodings": "0",
            "knownRegions": ["en", "Base"],
            "mainGroup": main_group_id,
            "productRefGroup": products_group_id,
            "projectDirPath": "",
            "projectRoot": "",
            "targets": list(self._target_ids.values()),
        }

        return {
            "archiveVersion": "1",
            "classes": {},
            "objectVersion": "56",
            "objects": objects,
            "rootObject": proj_id,
        }

    def _create_target_objects(
        self, target: Target, product_type: str, objects: dict[str, dict[str, Any]]
    ) -> tuple[str, str]:
        """Create PBX objects for a target.

        Returns:
            (target id, product reference id).
        """
        target_id = _generate_id()
        target_config_list_id = _generate_id()
        target_debug_config_id = _generate_id()
        target_release_config_id = _generate_id()
        product_ref_id = _generate_id()
        sources_phase_id = _generate_id()
        frameworks_phase_id = _generate_id()

        if product_type == STATIC_LIBRARY:
            output_name = f"lib{target.name}.a"
        elif product_type in (APPLICATION, BUNDLE):
            output_name = f"{target.name}.{target.bundle_extension()}"
        else:
            output_name = target.name

        for config_id, config_name in (
            (target_debug_config_id, "Debug"),
            (target_release_config_id, "Release"),
        ):
            objects[config_id] = {
                "isa": "XCBuildConfiguration",
                "buildSettings": {"PRODUCT_NAME": target.name},
                "name": config_name,
            }
        objects[target_config_list_id] = {
            "isa": "XCConfigurationList",
            "buildConfigurations": [target_debug_config_id, target_release_config_id],
            "defaultConfigurationIsVisible": "0",
            "defaultConfigurationName": "Release",
        }

        objects[product_ref_id] = {
            "isa": "PBXFileReference",
            "explicitFileType": EXPLICIT_FILE_TYPE_MAP[product_type],
            "includeInIndex": "0",
            "name": output_name,
            "path": output_name,
            "sourceTree": "BUILT_PRODUCTS_DIR",
        }

        for phase_id, isa in (
            (sources_phase_id, "PBXSourcesBuildPhase"),
            (frameworks_phase_id, "PBXFrameworksBuildPhase"),
        ):
            objects[phase_id] = {
                "isa": isa,
                "buildActionMask": "2147483647",
                "files": [],
                "runOnlyForDeploymentPostprocessing": "0",
            }

        objects[target_id] = {
            "isa": "PBXNativeTarget",
            "buildConfigurationList": target_config_list_id,
            "buildPhases": [sources_phase_id, frameworks_phase_id],
            "buildRules": [],
            "dependencies": [],
            "name": target.name,
            "productName": target.name,
            "productReference": product_ref_id,
            "productType": product_type,
        }
        return target_id, product_ref_id

    def _add_sources_to_target(self, target: Target) -> None:
        """Add SOURCES files to the target's group and build phase."""
        if self._xcode_project is None:
            return

        group = self._xcode_project.get_or_create_group(target.name)
        for source in target.scope.glob_list("SOURCES", inherit=False).paths:
            self._xcode_project.add_file(
                str(self._make_relative_path(source)),
                parent=group,
                force=False,
                file_options=FileOptions(create_build_files=True),
                target_name=target.name,
            )

    def _configure_build_settings(self, target: Target, project: Project) -> None:
        """Mirror search paths, flags and deployment target."""
        if self._xcode_project is None:
            return

        scope = target.scope
        search_paths = [str(self._make_relative_path(d)) for d in include_dirs(scope)]
        for dep in target.closure_targets():
            for header in dep.scope.glob_list("EXPORT", inherit=False).paths:
                directory = str(self._make_relative_path(header.parent))
                if directory not in search_paths:
                    search_paths.append(directory)
        if search_paths:
            self._xcode_project.set_flags(
                "HEADER_SEARCH_PATHS", search_paths, target_name=target.name
            )

        cflags = scope.get_list("FLAGS") + scope.get_list("CFLAGS")
        if cflags:
            self._xcode_project.set_flags("OTHER_CFLAGS", cflags, target_name=target.name)
        cxxflags = scope.get_list("FLAGS") + scope.get_list("CXXFLAGS")
        if cxxflags:
            self._xcode_project.set_flags(
                "OTHER_CPLUSPLUSFLAGS", cxxflags, target_name=target.name
            )

        roots = {t.name for t in project.target_graph.roots()}
        if target.name in roots:
            ldflags = target.link_flags().as_args()
            if ldflags:
                self._xcode_project.set_flags(
                    "OTHER_LDFLAGS", ldflags, target_name=target.name
                )

        min_version = scope.get_str("MIN_MACOS_VERSION")
        if min_version:
            self._xcode_project.set_flags(
                "MACOSX_DEPLOYMENT_TARGET", min_version, target_name=target.name
            )

    def _setup_dependencies(self, target: Target) -> None:
        """Add a target dependency for every LINK entry."""
        if self._xcode_project is None:
            return

        xcode_target = self._xcode_project.get_target_by_name(target.name)
        if xcode_target is None:
            return

        for name in target.link_names():
            if name not in self._target_ids:
                continue

            proxy_id = _generate_id()
            dep_id = _generate_id()
            root_project = self._xcode_project.rootObject

            proxy_obj = PBXGenericObject()
            proxy_obj._id = proxy_id  # type: ignore[attr-defined]  # pbxproj internal
            proxy_obj["isa"] = "PBXContainerItemProxy"
            proxy_obj["containerPortal"] = root_project
            proxy_obj["proxyType"] = "1"
            proxy_obj["remoteGlobalIDString"] = self._target_ids[name]
            proxy_obj["remoteInfo"] = name
            self._xcode_project.objects[proxy_id] = proxy_obj

            dep_obj = PBXGenericObject()
            dep_obj._id = dep_id  # type: ignore[attr-defined]  # pbxproj internal
            dep_obj["isa"] = "PBXTargetDependency"
            dep_obj["target"] = self._target_ids[name]
            dep_obj["targetProxy"] = proxy_id
            self._xcode_project.objects[dep_id] = dep_obj

            if "dependencies" not in xcode_target:
                xcode_target["dependencies"] = []
            xcode_target["dependencies"].append(dep_id)

    def _make_relative_path(self, path: Path) -> Path:
        """Make a path relative to the xcodeproj location.

        Paths under the output directory become relative to it, paths
        under the project root go through the top-level relative path,
        and anything else stays absolute.
        """
        if self._project_root is None or self._output_dir is None:
            return path

        if not path.is_absolute():
            path = self._project_root / path
        path = path.resolve()

        try:
            return path.relative_to(self._output_dir)
        except ValueError:
            pass
        try:
            return Path(self._topdir) / path.relative_to(self._project_root)
        except ValueError:
            pass
        return path
