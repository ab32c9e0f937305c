"""Tree-wide aggregate of extracted error declarations and details."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from .models import ErrorDeclaration, ErrorDetail, FileResult
from .walker import WalkIssue


@dataclass
class PackageInfo:
    """All files of one Go package directory."""

    package: str
    package_name: str = ""
    files: Dict[str, FileResult] = field(default_factory=dict)

    def declarations_named(self, name: str) -> List[ErrorDeclaration]:
        return [
            decl
            for path in sorted(self.files)
            for decl in self.files[path].declarations
            if decl.name == name
        ]


class InfoAll:
    """Snapshot of one walk, keyed component -> package -> file.

    Built fresh for every walk and never updated incrementally.
    """

    def __init__(self, component: str, root: str) -> None:
        self.component = component
        self.root = root
        self.packages: Dict[str, PackageInfo] = {}
        self.walk_issues: List[WalkIssue] = []
        self.files_scanned = 0

    @classmethod
    def build(
        cls,
        component: str,
        root: str,
        results: Iterable[FileResult],
        walk_issues: Iterable[WalkIssue] = (),
    ) -> "InfoAll":
        info = cls(component, root)
        for result in results:
            info.add(result)
        info.walk_issues.extend(walk_issues)
        info.resolve_references()
        return info

    def add(self, result: FileResult) -> None:
        self.files_scanned += 1
        if not result.is_relevant:
            return
        package = self.packages.get(result.package)
        if package is None:
            package = PackageInfo(package=result.package)
            self.packages[result.package] = package
        if result.package_name and not package.package_name:
            package.package_name = result.package_name
        package.files[result.path] = result

    def files(self) -> Iterator[FileResult]:
        results = [result for package in self.packages.values() for result in package.files.values()]
        yield from sorted(results, key=lambda result: result.path)

    def declarations(self) -> List[ErrorDeclaration]:
        decls = [decl for result in self.files() for decl in result.declarations]
        return sorted(decls, key=_position_key)

    def details(self) -> List[ErrorDetail]:
        details = [detail for result in self.files() for detail in result.details]
        return sorted(details, key=lambda detail: (detail.path, detail.line, detail.column))

    def file_errors(self) -> List[Tuple[str, str]]:
        return [(result.path, error) for result in self.files() for error in result.errors]

    def resolve_references(self) -> None:
        """Bind each detail to its declaration: file scope first, then package scope.

        Qualified references (``pkg.ErrFooCode``) point into another package and
        stay unresolved, as do names declared in several other files of the
        package, which are marked ambiguous.
        """
        for package in self.packages.values():
            for result in package.files.values():
                for detail in result.details:
                    detail.resolved = None
                    detail.ambiguous = False
                    if detail.code_ref is None or detail.qualifier is not None:
                        continue
                    local = [decl for decl in result.declarations if decl.name == detail.code_ref]
                    if local:
                        detail.resolved = local[0].key
                        continue
                    matches = package.declarations_named(detail.code_ref)
                    if len(matches) == 1:
                        detail.resolved = matches[0].key
                    elif matches:
                        detail.ambiguous = True

    def to_dict(self) -> Dict[str, Any]:
        packages: Dict[str, Any] = {}
        for key in sorted(self.packages):
            package = self.packages[key]
            packages[key or "."] = {
                "package_name": package.package_name,
                "files": {path: package.files[path].to_dict() for path in sorted(package.files)},
            }
        return {
            "component": self.component,
            "root": self.root,
            "files_scanned": self.files_scanned,
            "packages": packages,
            "walk_issues": [issue.to_dict() for issue in self.walk_issues],
        }


def _position_key(decl: ErrorDeclaration) -> Tuple[str, int, int]:
    start = decl.span.start if decl.span is not None else -1
    return (decl.path, decl.line, start)


__all__ = ["InfoAll", "PackageInfo"]
