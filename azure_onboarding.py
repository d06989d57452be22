#!/usr/bin/env python3
# pylint: disable=C0301,R0913,R0914,W0718
"""
Cortex Cloud - Azure Onboarding Helper

Runs the write steps of an Azure onboarding after the permission checker has
passed: create a user-assigned managed identity, assign it a role, deploy the
onboarding template, trigger policy remediation and wait for the policy
engine to report non-compliant resources.

Every write step is skipped unless it is explicitly approved.

Usage:
    python azure_onboarding.py --scope SCOPE --location LOCATION [--template-file FILE] [--auto-approve] ...
"""

import argparse
import sys
import time
from logging import DEBUG, WARNING, basicConfig
from typing import Callable, Dict, List, Optional

from az_cli import DEFAULT_TIMEOUT, AzCliError, AzCmd, execute, execute_json
from console import confirm, parse_parameters

MANAGEMENT_GROUP_SCOPE = "/providers/Microsoft.Management/managementGroups/"

DEFAULT_POLL_ATTEMPTS = 20
DEFAULT_POLL_INTERVAL = 30


def management_group_of(scope: str) -> Optional[str]:
    """Management group name of a management-group scope, else None"""
    if scope.lower().startswith(MANAGEMENT_GROUP_SCOPE.lower()):
        return scope[len(MANAGEMENT_GROUP_SCOPE):].split('/')[0]
    return None


def subscription_of(scope: str) -> Optional[str]:
    parts = scope.strip('/').split('/')
    if len(parts) >= 2 and parts[0].lower() == 'subscriptions':
        return parts[1]
    return None


def create_managed_identity(name: str, resource_group: str, location: str, auto_approve: bool,
                            timeout: float = DEFAULT_TIMEOUT) -> Optional[str]:
    """Create a user-assigned managed identity and return its principal id"""
    if not auto_approve:
        print(f"⏭  Skipping creation of managed identity '{name}' in {resource_group}.")
        return None

    print(f"🔧 Creating managed identity '{name}' in {resource_group} ({location})...")
    try:
        identity = execute_json(
            AzCmd("identity", "create")
            .param("--name", name)
            .param("--resource-group", resource_group)
            .param("--location", location),
            timeout=timeout,
        )
    except AzCliError as e:
        print(f"❌ Failed to create managed identity '{name}': {e}")
        return None

    principal_id = (identity or {}).get('principalId')
    print(f"✅ Managed identity created (principal id: {principal_id})")
    return principal_id


def assign_role(principal_id: str, role: str, scope: str, auto_approve: bool,
                timeout: float = DEFAULT_TIMEOUT) -> bool:
    if not auto_approve:
        print(f"⏭  Skipping assignment of '{role}' to {principal_id} at {scope}.")
        return False

    print(f"🔧 Assigning '{role}' to {principal_id} at {scope}...")
    try:
        execute(
            AzCmd("role assignment", "create")
            .param("--assignee-object-id", principal_id)
            .param("--assignee-principal-type", "ServicePrincipal")
            .param("--role", role)
            .param("--scope", scope),
            timeout=timeout,
        )
    except AzCliError as e:
        print(f"❌ Failed to assign role '{role}': {e}")
        return False
    print(f"✅ Role '{role}' assigned.")
    return True


def deploy_template(template_file: str, scope: str, location: str, parameters: Dict[str, str],
                    auto_approve: bool, deployment_name: str = None,
                    timeout: float = DEFAULT_TIMEOUT) -> Optional[Dict]:
    """Deploy a template at management-group or subscription scope"""
    if not auto_approve:
        print(f"⏭  Skipping deployment of {template_file} at {scope}.")
        return None

    management_group = management_group_of(scope)
    if management_group:
        cmd = AzCmd("deployment mg", "create").param("--management-group-id", management_group)
    else:
        cmd = AzCmd("deployment sub", "create")
        subscription = subscription_of(scope)
        if subscription:
            cmd.param("--subscription", subscription)

    cmd.param("--location", location).param("--template-file", template_file)
    if deployment_name:
        cmd.param("--name", deployment_name)
    for key, value in parameters.items():
        cmd.param("--parameters", f"{key}={value}")

    print(f"🚀 Deploying {template_file} at {scope}...")
    try:
        deployment = execute_json(cmd, timeout=timeout)
    except AzCliError as e:
        print(f"❌ Deployment failed: {e}")
        if e.stderr:
            print(f"   {e.stderr.strip()}")
        return None

    state = ((deployment or {}).get('properties') or {}).get('provisioningState', 'Unknown')
    print(f"✅ Deployment finished with state: {state}")
    return deployment


def trigger_remediation(name: str, policy_assignment_id: str, scope: str, auto_approve: bool,
                        timeout: float = DEFAULT_TIMEOUT) -> bool:
    if not auto_approve:
        print(f"⏭  Skipping remediation '{name}' for {policy_assignment_id}.")
        return False

    cmd = AzCmd("policy remediation", "create").param("--name", name).param("--policy-assignment", policy_assignment_id)
    management_group = management_group_of(scope)
    if management_group:
        cmd.param("--management-group", management_group)
    else:
        cmd.param("--scope", scope)

    print(f"🔧 Triggering remediation '{name}'...")
    try:
        execute(cmd, timeout=timeout)
    except AzCliError as e:
        print(f"❌ Failed to trigger remediation: {e}")
        return False
    print("✅ Remediation task created.")
    return True


def non_compliant_count(policy_assignment_id: str, scope: str, timeout: float = DEFAULT_TIMEOUT) -> int:
    """Current number of resources the policy engine reports as non-compliant"""
    cmd = AzCmd("policy state", "summarize").param("--policy-assignment", policy_assignment_id.split('/')[-1])
    management_group = management_group_of(scope)
    if management_group:
        cmd.param("--management-group", management_group)
    else:
        subscription = subscription_of(scope)
        if subscription:
            cmd.param("--subscription", subscription)
    cmd.param("--query", "results.nonCompliantResources")

    count = execute_json(cmd, timeout=timeout)
    return int(count or 0)


def poll_non_compliant(policy_assignment_id: str, scope: str, max_attempts: int = DEFAULT_POLL_ATTEMPTS,
                       interval: float = DEFAULT_POLL_INTERVAL, sleep: Callable[[float], None] = time.sleep,
                       timeout: float = DEFAULT_TIMEOUT) -> Optional[int]:
    """Poll until non-compliant resources show up; None if none appear in time"""
    for attempt in range(1, max_attempts + 1):
        try:
            count = non_compliant_count(policy_assignment_id, scope, timeout=timeout)
        except (AzCliError, ValueError, TypeError) as e:
            print(f"   ⚠️  Attempt {attempt}/{max_attempts}: could not read compliance state ({e})")
            count = 0

        if count > 0:
            print(f"✅ Found {count} non-compliant resource(s) after {attempt} attempt(s).")
            return count

        print(f"   ⏳ Attempt {attempt}/{max_attempts}: no non-compliant resources yet")
        if attempt < max_attempts:
            sleep(interval)

    print(f"ℹ️  No non-compliant resources found within the timeout window "
          f"({max_attempts} attempts, {interval}s apart).")
    return None


def parse_arguments(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Azure write steps of a Cortex Cloud onboarding")
    parser.add_argument('--scope', required=True, help='Subscription or management group scope')
    parser.add_argument('--location', required=True, help='Azure location for deployments and identities')
    parser.add_argument('--template-file', help='ARM/Bicep template to deploy')
    parser.add_argument('--deployment-name', help='Name of the deployment')
    parser.add_argument('--parameter', action='append', default=[], metavar='KEY=VALUE',
                        help='Template parameter (repeatable)')
    parser.add_argument('--identity-name', help='User-assigned managed identity to create')
    parser.add_argument('--resource-group', help='Resource group of the managed identity')
    parser.add_argument('--role', help='Role to assign to the managed identity at the scope')
    parser.add_argument('--policy-assignment', help='Policy assignment id to remediate and poll')
    parser.add_argument('--remediation-name', default='cortex-remediation', help='Name of the remediation task')
    parser.add_argument('--poll-attempts', type=int, default=DEFAULT_POLL_ATTEMPTS,
                        help=f'Compliance polling attempts (default: {DEFAULT_POLL_ATTEMPTS})')
    parser.add_argument('--poll-interval', type=float, default=DEFAULT_POLL_INTERVAL,
                        help=f'Seconds between compliance polls (default: {DEFAULT_POLL_INTERVAL})')
    parser.add_argument('--auto-approve', action='store_true', help='Perform write operations without prompting')
    parser.add_argument('--timeout', type=float, default=DEFAULT_TIMEOUT,
                        help=f'Timeout in seconds for each az call (default: {DEFAULT_TIMEOUT})')
    parser.add_argument('--debug', action='store_true', help='Log every az command')
    return parser.parse_args(argv)


def main(argv: List[str] = None):
    """Main function"""
    args = parse_arguments(argv)
    basicConfig(level=DEBUG if args.debug else WARNING)

    try:
        parameters = parse_parameters(args.parameter)
    except argparse.ArgumentTypeError as e:
        print(f"❌ {e}")
        sys.exit(1)

    failed = False

    if args.identity_name:
        if not args.resource_group:
            print("❌ --resource-group is required with --identity-name")
            sys.exit(1)
        approved = confirm(f"Create managed identity '{args.identity_name}'?", args.auto_approve)
        principal_id = create_managed_identity(args.identity_name, args.resource_group, args.location,
                                               approved, timeout=args.timeout)
        if approved and not principal_id:
            failed = True
        if principal_id and args.role:
            approved = confirm(f"Assign '{args.role}' at {args.scope}?", args.auto_approve)
            if approved and not assign_role(principal_id, args.role, args.scope, approved, timeout=args.timeout):
                failed = True

    if args.template_file:
        approved = confirm(f"Deploy {args.template_file} at {args.scope}?", args.auto_approve)
        if deploy_template(args.template_file, args.scope, args.location, parameters, approved,
                           deployment_name=args.deployment_name, timeout=args.timeout) is None and approved:
            failed = True

    if args.policy_assignment:
        approved = confirm(f"Trigger remediation for {args.policy_assignment}?", args.auto_approve)
        if approved and not trigger_remediation(args.remediation_name, args.policy_assignment, args.scope,
                                                approved, timeout=args.timeout):
            failed = True
        poll_non_compliant(args.policy_assignment, args.scope, max_attempts=args.poll_attempts,
                           interval=args.poll_interval, timeout=args.timeout)

    sys.exit(1 if failed else 0)


if __name__ == '__main__':
    main()
