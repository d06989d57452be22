"""
Permission coverage evaluation for Azure role-based access control.

Decides whether a required action such as
``Microsoft.Authorization/roleAssignments/write`` is covered by the action
patterns granted (``actions``) and denied (``notActions``) to a principal,
either by aggregating the definitions of the roles assigned to it
(``RoleCatalog``) or from a pre-resolved effective permissions document
(``EffectivePermissions``).
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

AssignmentLookup = Callable[[str, str], List[str]]
DefinitionLookup = Callable[[str], Tuple[List[str], List[str]]]


class CoverageVerdict(Enum):
    GRANTED = "Granted"
    DENIED = "Denied"
    UNKNOWN = "Unknown"


@lru_cache(maxsize=1024)
def _normalize_pattern(pattern: str) -> Tuple[bool, str]:
    """Return (is_prefix, text) for a lower-cased pattern"""
    lowered = pattern.lower()
    if lowered.endswith('*'):
        return True, lowered[:-1]
    return False, lowered


def covers(pattern: str, required: str) -> bool:
    """Check if an action pattern covers a required permission (case-insensitive)

    A trailing '*' is a raw string-prefix match, so 'Microsoft.Compute/*'
    also matches 'Microsoft.ComputeXYZ/...'. The required permission is
    always taken literally.
    """
    if pattern == '*':
        return True

    is_prefix, text = _normalize_pattern(pattern)
    lowered_required = required.lower()
    if is_prefix:
        return lowered_required.startswith(text)
    return lowered_required == text


def evaluate(required: str, granted_patterns: Iterable[str], denied_patterns: Iterable[str]) -> CoverageVerdict:
    """Granted iff some grant covers the permission and no deny covers it"""
    if not any(covers(pattern, required) for pattern in granted_patterns):
        return CoverageVerdict.DENIED
    if any(covers(pattern, required) for pattern in denied_patterns):
        return CoverageVerdict.DENIED
    return CoverageVerdict.GRANTED


@dataclass
class EffectivePatterns:
    """Union of the grant/deny patterns of a set of roles"""

    granted: Set[str] = field(default_factory=set)
    denied: Set[str] = field(default_factory=set)
    unresolved: List[str] = field(default_factory=list)


@dataclass
class CategoryResult:
    category: str
    required: str
    verdict: CoverageVerdict


@dataclass
class PermissionResult:
    permission: str
    verdict: CoverageVerdict


class RoleCatalog:
    """Resolves the roles assigned to a principal into grant/deny patterns.

    Both lookups are external collaborators (Azure CLI calls in production).
    A failing lookup never raises out of the catalog: a scope with a failed
    assignment lookup contributes no role names and a role with a failed
    definition lookup contributes no patterns.
    """

    def __init__(self, assignment_lookup: AssignmentLookup, definition_lookup: DefinitionLookup,
                 max_workers: int = 1):
        self.assignment_lookup = assignment_lookup
        self.definition_lookup = definition_lookup
        self.max_workers = max(1, max_workers)

    def assigned_role_names(self, principal_id: str, scope: str) -> Set[str]:
        """Get the names of the roles assigned to a principal at one scope"""
        try:
            return {name for name in self.assignment_lookup(principal_id, scope) if name}
        except Exception as e:
            print(f"   ⚠️  Could not list role assignments at {scope}: {e}")
            return set()

    def role_names_by_scope(self, principal_id: str, scopes: Sequence[str]) -> Dict[str, Set[str]]:
        """Role names assigned at each scope, in scope order"""
        return {scope: self.assigned_role_names(principal_id, scope) for scope in scopes}

    def aggregate_role_names(self, principal_id: str, scopes: Sequence[str]) -> Set[str]:
        """Union of the role names assigned at every scope"""
        return set().union(*self.role_names_by_scope(principal_id, scopes).values())

    def actions_for_role(self, role_name: str) -> Tuple[List[str], List[str]]:
        """Get the (granted, denied) action patterns of one role definition"""
        granted, denied = self._lookup_definition(role_name)
        return granted or [], denied or []

    def _lookup_definition(self, role_name: str) -> Tuple[Optional[List[str]], Optional[List[str]]]:
        try:
            granted, denied = self.definition_lookup(role_name)
            return list(granted), list(denied)
        except Exception as e:
            print(f"   ⚠️  Could not resolve role definition '{role_name}': {e}")
            return None, None

    def effective_patterns(self, role_names: Iterable[str]) -> EffectivePatterns:
        """Aggregate the patterns of all roles, recording roles that could not be resolved"""
        ordered = sorted(set(role_names))

        if self.max_workers > 1 and len(ordered) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                lookups = list(executor.map(self._lookup_definition, ordered))
        else:
            lookups = [self._lookup_definition(name) for name in ordered]

        patterns = EffectivePatterns()
        for role_name, (granted, denied) in zip(ordered, lookups):
            if granted is None:
                patterns.unresolved.append(role_name)
                continue
            patterns.granted.update(granted)
            patterns.denied.update(denied)
        return patterns


class EffectivePermissions:
    """Grant/deny lists from a Microsoft.Authorization/permissions response"""

    def __init__(self, actions: Iterable[str], not_actions: Iterable[str]):
        self.actions = list(actions)
        self.not_actions = list(not_actions)

    @classmethod
    def from_document(cls, document: Optional[Dict]) -> Optional["EffectivePermissions"]:
        """Parse the document; None when it is missing or has no permission entries"""
        if not isinstance(document, dict):
            return None
        entries = document.get('value') or []
        if not entries:
            return None

        actions, not_actions = [], []
        for entry in entries:
            actions.extend(entry.get('actions') or [])
            not_actions.extend(entry.get('notActions') or [])
        return cls(actions, not_actions)

    def evaluate(self, required: str) -> CoverageVerdict:
        return evaluate(required, self.actions, self.not_actions)


def category_report(categories: Sequence[Tuple[str, str]], patterns: EffectivePatterns) -> List[CategoryResult]:
    """Evaluate every (category, required pattern) entry in table order"""
    results = []
    for category, required in categories:
        verdict = evaluate(required, patterns.granted, patterns.denied)
        # Missing grant may come from a role we could not read
        if (verdict is CoverageVerdict.DENIED and patterns.unresolved
                and not any(covers(p, required) for p in patterns.denied)):
            verdict = CoverageVerdict.UNKNOWN
        results.append(CategoryResult(category, required, verdict))
    return results


def granular_report(required_permissions: Sequence[str],
                    effective: Optional[EffectivePermissions]) -> List[PermissionResult]:
    """Evaluate concrete permissions against an effective permissions document"""
    if effective is None:
        return [PermissionResult(perm, CoverageVerdict.UNKNOWN) for perm in required_permissions]
    return [PermissionResult(perm, effective.evaluate(perm)) for perm in required_permissions]
