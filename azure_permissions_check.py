#!/usr/bin/env python3
# pylint: disable=C0301,R0902,R0911,R0912,R0913,R0914,W0718
"""
Cortex Cloud - Azure Permissions & Configuration Checker

This script validates whether the signed-in Azure CLI user has the permissions
and environment configuration required to onboard Cortex Cloud:

  - Entra ID Global Administrator role membership
  - Broad wildcard permissions (e.g. 'Microsoft.Compute/*') from assigned roles
  - Granular effective permissions at a target scope
  - Registration of the required Azure Resource Providers

Usage:
    python azure_permissions_check.py [--scope SCOPE | -mg MG_NAME | --tenant-root] [check options]
"""

import argparse
import json
import sys
from dataclasses import dataclass, field
from enum import Enum
from logging import DEBUG, WARNING, basicConfig
from typing import Callable, Dict, List, Optional, Set, Tuple

from az_cli import (
    DEFAULT_TIMEOUT,
    AzCliError,
    AzCmd,
    az_installed,
    execute,
    execute_json,
    execute_tsv,
)
from console import prompt_confirmation
from permission_coverage import (
    CoverageVerdict,
    EffectivePermissions,
    RoleCatalog,
    category_report,
    granular_report,
)

# Category label -> wildcard the assigned roles must grant
WILDCARD_PERMISSIONS: List[Tuple[str, str]] = [
    ("Compute", "Microsoft.Compute/*"),
    ("Storage", "Microsoft.Storage/*"),
    ("Networking", "Microsoft.Network/*"),
    ("Key Vault", "Microsoft.KeyVault/*"),
    ("Container Services", "Microsoft.ContainerService/*"),
    ("Container Registry", "Microsoft.ContainerRegistry/*"),
    ("Monitoring & Logs", "Microsoft.Insights/*"),
    ("IAM / Role Assignments", "Microsoft.Authorization/roleAssignments/*"),
    ("Cosmos DB", "Microsoft.DocumentDB/*"),
    ("App Services", "Microsoft.Web/*"),
    ("Policy Insights", "Microsoft.PolicyInsights/*"),
    ("Event Hubs", "Microsoft.EventHub/*"),
]

GRANULAR_PERMISSIONS: List[str] = [
    "Microsoft.Resources/deploymentScripts/*",
    "Microsoft.Resources/subscriptions/resourceGroups/*",
    "Microsoft.Resources/deployments/validate/action",
    "Microsoft.Resources/deployments/read",
    "Microsoft.Resources/deployments/write",
    "Microsoft.Resources/deployments/delete",
    "Microsoft.Resources/deployments/whatIf/action",
    "Microsoft.Authorization/elevateAccess/action",
    "Microsoft.Authorization/roleAssignments/read",
    "Microsoft.Authorization/roleAssignments/write",
    "Microsoft.Authorization/roleAssignments/delete",
    "Microsoft.Authorization/roleDefinitions/read",
    "Microsoft.Authorization/roleDefinitions/write",
    "Microsoft.Authorization/roleDefinitions/delete",
    "Microsoft.Authorization/roleManagementPolicies/read",
    "Microsoft.Authorization/roleManagementPolicies/write",
    "Microsoft.PolicyInsights/remediations/read",
    "Microsoft.PolicyInsights/remediations/write",
    "Microsoft.PolicyInsights/remediations/delete",
    "Microsoft.aadiam/diagnosticsettings/read",
    "Microsoft.aadiam/diagnosticsettings/write",
    "Microsoft.aadiam/diagnosticsettings/delete",
    "Microsoft.aadiam/tenants/providers/Microsoft.Insights/diagnosticSettings/write",
]

REQUIRED_PROVIDERS: List[str] = [
    "Microsoft.Compute",
    "Microsoft.Storage",
    "Microsoft.Network",
    "Microsoft.KeyVault",
    "Microsoft.ContainerService",
    "Microsoft.ContainerRegistry",
    "Microsoft.Insights",
    "Microsoft.Authorization",
    "Microsoft.DocumentDB",
    "Microsoft.Web",
    "Microsoft.PolicyInsights",
    "Microsoft.EventHub",
    "Microsoft.Security",
    "Microsoft.Aadiam",
    "Microsoft.Communication",
    "Microsoft.Datadog",
]

GRAPH_DIRECTORY_ROLES_URL = "https://graph.microsoft.com/v1.0/directoryRoles"
EFFECTIVE_PERMISSIONS_API_VERSION = "2022-04-01"
MANAGEMENT_GROUP_SCOPE = "/providers/Microsoft.Management/managementGroups/"


class CheckKind(Enum):
    GLOBAL_ADMIN = "global-admin"
    WILDCARD = "wildcard"
    GRANULAR = "granular"
    PROVIDERS = "providers"


@dataclass
class CheckerContext:
    """Everything a check needs to know about the run"""

    scope: str
    principal_id: str
    principal_name: str
    tenant_id: str
    subscription_id: str
    role_scopes: List[str] = field(default_factory=list)
    interactive: bool = True
    auto_approve: bool = False

    def __post_init__(self):
        if not self.role_scopes:
            self.role_scopes = [self.scope]


def print_header(title: str):
    print("\n" + "=" * 70)
    print(f"# {title}")
    print("=" * 70)


class AzurePermissionChecker:
    """Runs the Cortex Cloud permission checks against the signed-in Azure CLI user"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_workers: int = 1):
        self.timeout = timeout
        self.catalog = RoleCatalog(self.lookup_role_assignments, self.lookup_role_definition,
                                   max_workers=max_workers)

    # ------------------------------------------------------------------
    # External lookups
    # ------------------------------------------------------------------

    def lookup_role_assignments(self, principal_id: str, scope: str) -> List[str]:
        """Role definition names assigned to a principal at a scope"""
        names = execute_json(
            AzCmd("role assignment", "list")
            .param("--assignee", principal_id)
            .param("--scope", scope)
            .param("--query", "[].roleDefinitionName"),
            timeout=self.timeout,
        )
        return list(names or [])

    def lookup_role_definition(self, role_name: str) -> Tuple[List[str], List[str]]:
        """Granted actions and notActions of a role definition"""
        definitions = execute_json(
            AzCmd("role definition", "list").param("--name", role_name),
            timeout=self.timeout,
        )
        if not definitions:
            raise AzCliError(f"Role definition '{role_name}' not found")

        actions, not_actions = [], []
        for definition in definitions:
            for permission in definition.get('permissions', []):
                actions.extend(permission.get('actions') or [])
                not_actions.extend(permission.get('notActions') or [])
        return actions, not_actions

    def lookup_effective_permissions(self, scope: str) -> Optional[EffectivePermissions]:
        uri = f"{scope}/providers/Microsoft.Authorization/permissions?api-version={EFFECTIVE_PERMISSIONS_API_VERSION}"
        try:
            document = execute_json(
                AzCmd("rest").param("--method", "get").param("--uri", uri),
                timeout=self.timeout,
            )
        except AzCliError as e:
            print(f"   ⚠️  Effective permissions query failed: {e}")
            return None
        return EffectivePermissions.from_document(document)

    def lookup_provider_state(self, namespace: str) -> str:
        try:
            state = execute_tsv(
                AzCmd("provider", "show")
                .param("--namespace", namespace)
                .param("--query", "registrationState"),
                timeout=self.timeout,
            )
        except AzCliError:
            return "Unknown"
        return state or "Unknown"

    def get_tenant_root_management_group(self) -> Optional[str]:
        try:
            root = execute_tsv(
                AzCmd("account management-group", "list")
                .param("--query", "[?properties.parent==null].name | [0]"),
                timeout=self.timeout,
            )
        except AzCliError as e:
            print(f"   ⚠️  Could not list management groups: {e}")
            return None
        return root or None

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def run_dependency_checks(self):
        """Make sure az is installed and logged in; exits on failure"""
        print_header("Running Pre-flight Checks")
        if not az_installed():
            print("❌ Error: Azure CLI ('az') is not installed. Please install it to continue.")
            sys.exit(1)
        print("✅ Azure CLI ('az') is installed.")

        try:
            execute(AzCmd("account", "show"), timeout=self.timeout)
        except AzCliError:
            print("❌ Error: You are not logged into Azure. Please run 'az login' first.")
            sys.exit(1)
        print("✅ Logged into Azure successfully.")

    def get_account(self) -> Dict:
        try:
            account = execute_json(AzCmd("account", "show"), timeout=self.timeout)
        except AzCliError as e:
            print(f"❌ Error: Could not read the current Azure account: {e}")
            sys.exit(1)
        return account or {}

    def get_signed_in_principal(self) -> Tuple[str, str]:
        """Object id and user principal name of the signed-in user; exits on failure"""
        try:
            user = execute_json(AzCmd("ad signed-in-user", "show"), timeout=self.timeout)
        except AzCliError as e:
            print(f"❌ Error: Could not resolve the signed-in user: {e}")
            sys.exit(1)

        if not user or not user.get('id'):
            print("❌ Error: Could not resolve the signed-in user.")
            sys.exit(1)
        return user['id'], user.get('userPrincipalName', user['id'])

    def resolve_scope(self, scope: str = None, management_group: str = None, tenant_root: bool = False,
                      subscription_id: str = None) -> str:
        if scope:
            return scope
        if management_group:
            return f"{MANAGEMENT_GROUP_SCOPE}{management_group}"
        if tenant_root:
            root = self.get_tenant_root_management_group()
            if not root:
                print("❌ Error: Could not auto-detect the Tenant Root Management Group.")
                sys.exit(1)
            return f"{MANAGEMENT_GROUP_SCOPE}{root}"

        print("\n⚠️  Note: No scope was specified. Defaulting to the current subscription.")
        return f"/subscriptions/{subscription_id}"

    def build_context(self, scope: str = None, management_group: str = None, tenant_root: bool = False,
                      aggregate_root: bool = False, interactive: bool = True,
                      auto_approve: bool = False) -> CheckerContext:
        account = self.get_account()
        subscription_id = account.get('id', '')
        tenant_id = account.get('tenantId', '')

        target_scope = self.resolve_scope(scope, management_group, tenant_root, subscription_id)
        principal_id, principal_name = self.get_signed_in_principal()

        role_scopes = [target_scope]
        if aggregate_root:
            root = self.get_tenant_root_management_group()
            extra = [f"/subscriptions/{subscription_id}"]
            if root:
                extra.insert(0, f"{MANAGEMENT_GROUP_SCOPE}{root}")
            role_scopes.extend(s for s in extra if s not in role_scopes)

        return CheckerContext(
            scope=target_scope,
            principal_id=principal_id,
            principal_name=principal_name,
            tenant_id=tenant_id,
            subscription_id=subscription_id,
            role_scopes=role_scopes,
            interactive=interactive,
            auto_approve=auto_approve,
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def run_global_admin_check(self, context: CheckerContext) -> Optional[bool]:
        """True/False for membership, None when it could not be determined"""
        print_header("Checking Entra Global Administrator Role")
        try:
            role_ids = execute_json(
                AzCmd("rest")
                .param("--method", "GET")
                .param("--url", GRAPH_DIRECTORY_ROLES_URL)
                .param("--query", "value[?displayName=='Global Administrator'].id"),
                timeout=self.timeout,
            )
        except AzCliError:
            role_ids = None

        if not role_ids:
            print("ℹ️  The 'Global Administrator' role was not found. This can happen if it's inactive "
                  "or if you lack permissions to query directory roles.")
            return None

        try:
            member_ids = execute_json(
                AzCmd("rest")
                .param("--method", "GET")
                .param("--url", f"{GRAPH_DIRECTORY_ROLES_URL}/{role_ids[0]}/members")
                .param("--query", "value[].id"),
                timeout=self.timeout,
            )
        except AzCliError as e:
            print(f"⚠️  Could not list Global Administrator members: {e}")
            return None

        if context.principal_id in (member_ids or []):
            print("✅ User IS a Global Administrator in Entra ID.")
            return True
        print("❌ User is NOT a Global Administrator in Entra ID.")
        return False

    def run_wildcard_check(self, context: CheckerContext,
                           categories: List[Tuple[str, str]] = None) -> Dict:
        print_header("Checking Role-Based Wildcard Permissions at Scope")
        print("ℹ️  This check inspects the definitions of roles assigned to the user.")
        for role_scope in context.role_scopes:
            print(f"ℹ️  Role Scope: {role_scope}")

        categories = WILDCARD_PERMISSIONS if categories is None else categories
        assigned = self.catalog.role_names_by_scope(context.principal_id, context.role_scopes)
        roles_by_scope = {role_scope: sorted(names) for role_scope, names in assigned.items()}
        role_names = set().union(*assigned.values())
        result = {
            'role_scopes': list(context.role_scopes),
            'roles_by_scope': roles_by_scope,
            'roles': sorted(role_names),
            'unresolved_roles': [],
            'results': [],
        }

        if not role_names:
            print("❌ User has no roles assigned at the checked scope(s).")
            return result

        print("\n📜 Assigned Roles:")
        if len(roles_by_scope) > 1:
            for role_scope, scope_roles in roles_by_scope.items():
                marker = "🔒" if role_scope.lower().startswith(MANAGEMENT_GROUP_SCOPE.lower()) else "🔑"
                print(f"📌 {role_scope}")
                for role_name in scope_roles or ["(none)"]:
                    print(f"   {marker} {role_name}")
        else:
            for role_name in result['roles']:
                print(f"   - {role_name}")
        print()

        patterns = self.catalog.effective_patterns(role_names)
        result['unresolved_roles'] = patterns.unresolved
        result['results'] = category_report(categories, patterns)

        for entry in result['results']:
            print(f"🔐 {entry.category:<25} → {entry.required:<45}: {format_verdict(entry.verdict)}")
        return result

    def run_granular_check(self, context: CheckerContext, permissions: List[str] = None) -> Dict:
        print_header("Checking Granular Effective Permissions at Scope")
        print("ℹ️  This check resolves all roles to determine the user's effective permissions.")
        print(f"ℹ️  Target Scope: {context.scope}\n")

        permissions = GRANULAR_PERMISSIONS if permissions is None else permissions
        effective = self.lookup_effective_permissions(context.scope)
        if effective is None:
            print("❌ Could not fetch effective permissions. The scope may be invalid or you lack permissions to read it.")

        results = granular_report(permissions, effective)
        if effective is not None:
            for entry in results:
                label = "[GRANTED]" if entry.verdict is CoverageVerdict.GRANTED else "[DENIED] "
                print(f"{label}  {entry.permission}")
        return {'fetched': effective is not None, 'results': results}

    def register_provider(self, namespace: str, auto_approve: bool) -> bool:
        """Register a resource provider; does nothing unless approved"""
        if not auto_approve:
            print(f"   ⏭  Skipping registration for {namespace}.")
            return False

        print(f"   🔧 Registering {namespace}...")
        try:
            execute(AzCmd("provider", "register").param("--namespace", namespace).flag("--wait"),
                    timeout=self.timeout)
        except AzCliError:
            print(f"   ❌ Failed to register {namespace}. You may lack the required permissions.")
            return False
        print(f"   ✅ Successfully registered {namespace}.")
        return True

    def run_provider_check(self, context: CheckerContext, providers: List[str] = None,
                           confirm: Callable[[str], bool] = prompt_confirmation) -> List[Dict]:
        print_header("Checking Azure Resource Provider Registrations")
        providers = REQUIRED_PROVIDERS if providers is None else providers

        results = []
        for namespace in providers:
            state = self.lookup_provider_state(namespace)
            entry = {'provider': namespace, 'state': state, 'registered_now': False}

            if state == "Registered":
                print(f"✅ {namespace} → {state}")
            else:
                print(f"⚠️  {namespace} → {state}")
                if context.auto_approve:
                    approved = True
                elif context.interactive:
                    approved = confirm(f"Register {namespace}?")
                else:
                    approved = False
                entry['registered_now'] = self.register_provider(namespace, approved)
                if not entry['registered_now']:
                    print(f"   🧾 Check status later with: az provider show --namespace {namespace} "
                          "--query registrationState -o tsv")
            results.append(entry)
        return results

    # ------------------------------------------------------------------
    # Orchestration and reporting
    # ------------------------------------------------------------------

    def run_checks(self, context: CheckerContext, checks: Set[CheckKind],
                   confirm: Callable[[str], bool] = prompt_confirmation) -> Dict:
        print_header("Gathering User and Tenant Context")
        print(f"👤 User Principal Name: {context.principal_name}")
        print(f"🆔 User Object ID:      {context.principal_id}")
        print(f"🏢 Tenant ID:           {context.tenant_id}")
        print(f"🎯 Target Scope:        {context.scope}")

        results = {'checks': sorted(kind.value for kind in checks)}
        if CheckKind.GLOBAL_ADMIN in checks:
            results['global_admin'] = self.run_global_admin_check(context)
        if CheckKind.WILDCARD in checks:
            results['wildcard'] = self.run_wildcard_check(context)
        if CheckKind.GRANULAR in checks:
            results['granular'] = self.run_granular_check(context)
        if CheckKind.PROVIDERS in checks:
            results['providers'] = self.run_provider_check(context, confirm=confirm)

        results['severity'] = determine_severity(results)
        return results

    def print_summary(self, results: Dict):
        print("\n" + "=" * 70)
        print("🛡️  CORTEX CLOUD - AZURE PERMISSIONS SUMMARY")
        print("=" * 70)

        if 'global_admin' in results:
            status = {True: "✅ Yes", False: "❌ No", None: "❔ Unknown"}[results['global_admin']]
            print(f"   Global Administrator: {status}")

        if 'wildcard' in results:
            wildcard = results['wildcard']
            counts = count_verdicts(wildcard['results'])
            print(f"   Assigned Roles: {len(wildcard['roles'])}")
            print(f"   Wildcard Categories: {counts['Granted']} granted, {counts['Denied']} denied, "
                  f"{counts['Unknown']} unknown")
            if wildcard['unresolved_roles']:
                print(f"   ⚠️  Unresolved Roles: {', '.join(wildcard['unresolved_roles'])}")

        if 'granular' in results:
            if results['granular']['fetched']:
                counts = count_verdicts(results['granular']['results'])
                print(f"   Granular Permissions: {counts['Granted']} granted, {counts['Denied']} denied")
            else:
                print("   Granular Permissions: ❔ could not fetch effective permissions")

        if 'providers' in results:
            pending = [p['provider'] for p in results['providers']
                       if p['state'] != "Registered" and not p['registered_now']]
            print(f"   Unregistered Providers: {len(pending)}")
            for namespace in pending:
                print(f"     - {namespace}")

        print(f"   Severity: {results['severity']}")
        print("=" * 70)

    def generate_json_report(self, context: CheckerContext, results: Dict) -> Dict:
        report = {
            "context": {
                "principal_id": context.principal_id,
                "principal_name": context.principal_name,
                "tenant_id": context.tenant_id,
                "subscription_id": context.subscription_id,
                "scope": context.scope,
                "role_scopes": context.role_scopes,
            },
            "checks": results['checks'],
            "severity": results['severity'],
        }

        if 'global_admin' in results:
            report['global_admin'] = results['global_admin']
        if 'wildcard' in results:
            wildcard = results['wildcard']
            report['wildcard'] = {
                'roles': wildcard['roles'],
                'roles_by_scope': wildcard['roles_by_scope'],
                'unresolved_roles': wildcard['unresolved_roles'],
                'categories': [
                    {'category': r.category, 'required': r.required, 'verdict': r.verdict.value}
                    for r in wildcard['results']
                ],
            }
        if 'granular' in results:
            report['granular'] = {
                'fetched': results['granular']['fetched'],
                'permissions': [
                    {'permission': r.permission, 'verdict': r.verdict.value}
                    for r in results['granular']['results']
                ],
            }
        if 'providers' in results:
            report['providers'] = results['providers']
        return report

    def write_results_to_file(self, context: CheckerContext, results: Dict, filename: str = None):
        try:
            if not filename:
                suffix = context.subscription_id or context.tenant_id or "azure"
                filename = f"cortex_azure_permissions_{suffix}.json"
            with open(filename, 'w', encoding='utf-8') as f:
                json.dump(self.generate_json_report(context, results), f, indent=2, ensure_ascii=False)
            print(f"📄 Results written to JSON file: {filename}")
        except OSError as e:
            print(f"❌ Error writing results to file: {e}")


def format_verdict(verdict: CoverageVerdict) -> str:
    if verdict is CoverageVerdict.GRANTED:
        return "✅ Yes"
    if verdict is CoverageVerdict.DENIED:
        return "❌ No"
    return "❔ Unknown"


def count_verdicts(entries) -> Dict[str, int]:
    counts = {verdict.value: 0 for verdict in CoverageVerdict}
    for entry in entries:
        counts[entry.verdict.value] += 1
    return counts


def determine_severity(results: Dict) -> str:
    """HIGH for missing permissions, MEDIUM for undetermined results or providers, else LOW"""
    verdicts = []
    wildcard = results.get('wildcard')
    if wildcard is not None:
        if not wildcard['roles']:
            return 'HIGH'
        verdicts.extend(entry.verdict for entry in wildcard['results'])
    if 'granular' in results:
        verdicts.extend(entry.verdict for entry in results['granular']['results'])

    if CoverageVerdict.DENIED in verdicts:
        return 'HIGH'
    if CoverageVerdict.UNKNOWN in verdicts:
        return 'MEDIUM'
    if any(p['state'] != "Registered" and not p['registered_now'] for p in results.get('providers', [])):
        return 'MEDIUM'
    return 'LOW'


def parse_arguments(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate Azure permissions and configuration required to onboard Cortex Cloud"
    )

    scope_group = parser.add_mutually_exclusive_group()
    scope_group.add_argument('--scope', help='Full Azure resource ID to check against')
    scope_group.add_argument('-mg', '--management-group', help='Target a Management Group by its name or ID')
    scope_group.add_argument('--tenant-root', action='store_true',
                             help='Target the Tenant Root Management Group (auto-detected)')
    parser.add_argument('--aggregate-root', action='store_true',
                        help='Also include roles assigned at the tenant root and subscription in the wildcard check')

    parser.add_argument('--check-all', action='store_true', help='(Default) Run all available checks')
    parser.add_argument('--check-global-admin', action='store_true',
                        help='Run the Entra Global Administrator check')
    parser.add_argument('--check-wildcard', action='store_true',
                        help='Run the role-based wildcard permission checks')
    parser.add_argument('--check-granular', action='store_true',
                        help='Run the granular effective permission checks')
    parser.add_argument('--check-providers', action='store_true',
                        help='Run the Azure provider registration checks')

    approval_group = parser.add_mutually_exclusive_group()
    approval_group.add_argument('--non-interactive', action='store_true',
                                help='Run without prompts; skips provider registration')
    approval_group.add_argument('--auto-approve', action='store_true',
                                help='Register missing providers without prompting')

    parser.add_argument('--timeout', type=float, default=DEFAULT_TIMEOUT,
                        help=f'Timeout in seconds for each az call (default: {DEFAULT_TIMEOUT})')
    parser.add_argument('--max-workers', type=int, default=1,
                        help='Parallel role definition lookups (default: 1)')
    parser.add_argument('--output-file', help='Path of the JSON report (default: auto-generated)')
    parser.add_argument('--debug', action='store_true', help='Log every az command')
    return parser.parse_args(argv)


def selected_checks(args: argparse.Namespace) -> Set[CheckKind]:
    checks = set()
    if args.check_global_admin:
        checks.add(CheckKind.GLOBAL_ADMIN)
    if args.check_wildcard:
        checks.add(CheckKind.WILDCARD)
    if args.check_granular:
        checks.add(CheckKind.GRANULAR)
    if args.check_providers:
        checks.add(CheckKind.PROVIDERS)
    if args.check_all or not checks:
        checks = set(CheckKind)
    return checks


def main(argv: List[str] = None):
    """Main function"""
    args = parse_arguments(argv)
    basicConfig(level=DEBUG if args.debug else WARNING)

    print_header("☁️  Cortex Cloud - Azure Permissions & Configuration Checker")
    checker = AzurePermissionChecker(timeout=args.timeout, max_workers=args.max_workers)
    checker.run_dependency_checks()

    context = checker.build_context(
        scope=args.scope,
        management_group=args.management_group,
        tenant_root=args.tenant_root,
        aggregate_root=args.aggregate_root,
        interactive=not args.non_interactive,
        auto_approve=args.auto_approve,
    )
    results = checker.run_checks(context, selected_checks(args))
    checker.print_summary(results)
    checker.write_results_to_file(context, results, args.output_file)

    print("\nAll required permission checks complete.")
    print("Please verify passing status above, and proceed with Cortex Cloud onboarding.")

    if results['severity'] == 'HIGH':
        sys.exit(2)
    elif results['severity'] == 'MEDIUM':
        sys.exit(1)
    else:
        sys.exit(0)


if __name__ == '__main__':
    main()
