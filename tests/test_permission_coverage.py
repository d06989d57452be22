import pytest

from permission_coverage import (
    CoverageVerdict,
    EffectivePatterns,
    EffectivePermissions,
    RoleCatalog,
    category_report,
    covers,
    evaluate,
    granular_report,
)


class FakeAzure:
    """In-memory role assignments and role definitions"""

    def __init__(self, assignments=None, definitions=None, failing_scopes=(), failing_roles=()):
        # assignments: {scope: [role names]}, definitions: {role: (actions, not_actions)}
        self.assignments = assignments or {}
        self.definitions = definitions or {}
        self.failing_scopes = set(failing_scopes)
        self.failing_roles = set(failing_roles)
        self.definition_calls = []

    def list_assignments(self, principal_id, scope):
        if scope in self.failing_scopes:
            raise RuntimeError("AuthorizationFailed")
        return list(self.assignments.get(scope, []))

    def get_definition(self, role_name):
        self.definition_calls.append(role_name)
        if role_name in self.failing_roles:
            raise TimeoutError("lookup timed out")
        return self.definitions[role_name]

    def catalog(self, max_workers=1):
        return RoleCatalog(self.list_assignments, self.get_definition, max_workers=max_workers)


@pytest.mark.parametrize("required", [
    "Microsoft.Compute/virtualMachines/read",
    "anything",
    "Microsoft.Authorization/roleAssignments/*",
])
def test_universal_wildcard_covers_everything(required):
    assert covers("*", required)


def test_prefix_wildcard():
    assert covers("Microsoft.Compute/*", "Microsoft.Compute/virtualMachines/read")
    assert not covers("Microsoft.Compute/*", "Microsoft.Storage/accounts/read")


def test_prefix_wildcard_is_not_segment_aware():
    assert covers("Microsoft.Compute/*", "Microsoft.Compute/")
    assert covers("Microsoft.Compute*", "Microsoft.ComputeSchedule/actions/read")


def test_exact_match():
    assert covers("Microsoft.Compute/virtualMachines/read", "Microsoft.Compute/virtualMachines/read")
    assert not covers("Microsoft.Compute/virtualMachines/read", "Microsoft.Compute/virtualMachines/write")


def test_matching_is_case_insensitive():
    assert covers("MICROSOFT.COMPUTE/*", "microsoft.compute/virtualMachines/read")
    assert covers("microsoft.aadiam/diagnosticsettings/read", "Microsoft.aadiam/diagnosticSettings/READ")


def test_required_wildcard_is_taken_literally():
    assert not covers("*/read", "Microsoft.Authorization/roleAssignments/*")
    assert covers("Microsoft.Resources/deploymentScripts/*", "Microsoft.Resources/deploymentScripts/*")


def test_evaluate_grant_and_no_grant():
    assert evaluate("Microsoft.Web/sites/read", ["Microsoft.Web/*"], []) is CoverageVerdict.GRANTED
    assert evaluate("Microsoft.Web/sites/read", ["Microsoft.Storage/*"], []) is CoverageVerdict.DENIED
    assert evaluate("Microsoft.Web/sites/read", [], []) is CoverageVerdict.DENIED


def test_deny_overrides_grant():
    verdict = evaluate(
        "Microsoft.Authorization/roleAssignments/write",
        {"*"},
        {"Microsoft.Authorization/roleAssignments/write"},
    )
    assert verdict is CoverageVerdict.DENIED


def test_assigned_role_names_soft_fails_to_empty_set(capsys):
    fake = FakeAzure(failing_scopes={"/subscriptions/sub-1"})
    names = fake.catalog().assigned_role_names("user-1", "/subscriptions/sub-1")
    assert names == set()
    assert "Could not list role assignments" in capsys.readouterr().out


def test_aggregate_role_names_collapses_duplicates():
    fake = FakeAzure(assignments={
        "/providers/Microsoft.Management/managementGroups/root": ["Owner"],
        "/subscriptions/sub-1": ["Reader", "Owner"],
    })
    names = fake.catalog().aggregate_role_names(
        "user-1",
        ["/providers/Microsoft.Management/managementGroups/root", "/subscriptions/sub-1"],
    )
    assert names == {"Owner", "Reader"}


def test_aggregate_role_names_keeps_healthy_scopes():
    fake = FakeAzure(assignments={"/subscriptions/sub-1": ["Contributor"]}, failing_scopes={"/root"})
    names = fake.catalog().aggregate_role_names("user-1", ["/root", "/subscriptions/sub-1"])
    assert names == {"Contributor"}


def test_role_names_by_scope_keeps_scope_order():
    fake = FakeAzure(assignments={"/subscriptions/sub-1": ["Reader", "Owner"]}, failing_scopes={"/root"})
    by_scope = fake.catalog().role_names_by_scope("user-1", ["/root", "/subscriptions/sub-1"])
    assert list(by_scope) == ["/root", "/subscriptions/sub-1"]
    assert by_scope == {"/root": set(), "/subscriptions/sub-1": {"Reader", "Owner"}}


def test_actions_for_role_failure_returns_empty_lists():
    fake = FakeAzure(failing_roles={"Broken"})
    assert fake.catalog().actions_for_role("Broken") == ([], [])


def test_actions_for_role_returns_grants_and_denies():
    fake = FakeAzure(definitions={"Contributor": (["*"], ["Microsoft.Authorization/*/Write"])})
    assert fake.catalog().actions_for_role("Contributor") == (["*"], ["Microsoft.Authorization/*/Write"])


def test_effective_patterns_skips_unresolved_roles():
    fake = FakeAzure(
        definitions={"Storage Admin": (["Microsoft.Storage/*"], [])},
        failing_roles={"Ghost Role"},
    )
    patterns = fake.catalog().effective_patterns({"Storage Admin", "Ghost Role"})
    assert patterns.granted == {"Microsoft.Storage/*"}
    assert patterns.unresolved == ["Ghost Role"]


def test_effective_patterns_parallel_matches_sequential():
    definitions = {
        "A": (["Microsoft.Compute/*"], []),
        "B": (["Microsoft.Network/*"], ["Microsoft.Network/publicIPAddresses/write"]),
        "C": (["*/read"], []),
    }
    sequential = FakeAzure(definitions=definitions).catalog().effective_patterns(definitions)
    parallel = FakeAzure(definitions=definitions).catalog(max_workers=4).effective_patterns(definitions)
    assert sequential == parallel


def test_category_report_contributor_is_granted():
    fake = FakeAzure(definitions={"Contributor": (["*"], [])})
    patterns = fake.catalog().effective_patterns({"Contributor"})
    results = category_report([("Compute", "Microsoft.Compute/*")], patterns)
    assert [(r.category, r.verdict) for r in results] == [("Compute", CoverageVerdict.GRANTED)]


def test_category_report_reader_cannot_manage_role_assignments():
    fake = FakeAzure(definitions={"Reader": (["*/read"], [])})
    patterns = fake.catalog().effective_patterns({"Reader"})
    results = category_report([("IAM", "Microsoft.Authorization/roleAssignments/*")], patterns)
    assert results[0].verdict is CoverageVerdict.DENIED


def test_category_report_one_failed_role_does_not_blank_results():
    fake = FakeAzure(definitions={"Owner": (["*"], [])}, failing_roles={"Custom Role"})
    patterns = fake.catalog().effective_patterns({"Owner", "Custom Role"})
    results = category_report([("Compute", "Microsoft.Compute/*")], patterns)
    assert results[0].verdict is CoverageVerdict.GRANTED


def test_category_report_unknown_when_missing_grant_may_be_unresolved_role():
    patterns = EffectivePatterns(granted={"Microsoft.Storage/*"}, unresolved=["Custom Role"])
    results = category_report([("Compute", "Microsoft.Compute/*"), ("Storage", "Microsoft.Storage/*")], patterns)
    assert [r.verdict for r in results] == [CoverageVerdict.UNKNOWN, CoverageVerdict.GRANTED]


def test_category_report_explicit_deny_stays_denied_with_unresolved_roles():
    patterns = EffectivePatterns(granted={"*"}, denied={"Microsoft.Compute/*"}, unresolved=["Custom Role"])
    results = category_report([("Compute", "Microsoft.Compute/*")], patterns)
    assert results[0].verdict is CoverageVerdict.DENIED


def test_category_report_keeps_order_and_duplicates():
    patterns = EffectivePatterns(granted={"Microsoft.Web/*"})
    table = [("Web", "Microsoft.Web/*"), ("Compute", "Microsoft.Compute/*"), ("Web", "Microsoft.Web/*")]
    results = category_report(table, patterns)
    assert [r.category for r in results] == ["Web", "Compute", "Web"]
    assert [r.verdict for r in results] == [
        CoverageVerdict.GRANTED, CoverageVerdict.DENIED, CoverageVerdict.GRANTED,
    ]


def test_effective_permissions_from_document():
    document = {"value": [
        {"actions": ["*"], "notActions": ["Microsoft.Authorization/*/Delete"]},
        {"actions": ["Microsoft.Resources/*"], "notActions": []},
    ]}
    effective = EffectivePermissions.from_document(document)
    assert effective.actions == ["*", "Microsoft.Resources/*"]
    assert effective.not_actions == ["Microsoft.Authorization/*/Delete"]


@pytest.mark.parametrize("document", [None, {}, {"value": []}, []])
def test_effective_permissions_missing_document(document):
    assert EffectivePermissions.from_document(document) is None


def test_granular_report_uses_deny_patterns():
    effective = EffectivePermissions(["*"], ["Microsoft.Authorization/roleAssignments/write"])
    results = granular_report(
        ["Microsoft.Authorization/roleAssignments/read", "Microsoft.Authorization/roleAssignments/write"],
        effective,
    )
    assert [r.verdict for r in results] == [CoverageVerdict.GRANTED, CoverageVerdict.DENIED]


def test_granular_report_unknown_without_document():
    results = granular_report(["Microsoft.Resources/deployments/read"], None)
    assert results[0].verdict is CoverageVerdict.UNKNOWN
