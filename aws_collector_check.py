#!/usr/bin/env python3
# pylint: disable=W293,C0301,R0911,R0912,R0914,W0718
"""
Cortex XSIAM S3 Collector - AWS Permission Checker

This script checks whether the current AWS identity can deploy the Cortex XSIAM
S3 collector CloudFormation template (SQS queue, queue policy and the
cross-account ingest role), and optionally deploys it.

The template is parsed to find the AWS actions CloudFormation will call on the
caller's behalf, and each action is checked with the IAM policy simulator.

Usage:
    python aws_collector_check.py [--profile PROFILE] [--region REGION] [--template-file FILE | --template-url URL]
                                  [--deploy --stack-name NAME --parameter KEY=VALUE ... [--auto-approve]]
"""

import argparse
import os
import re
import sys
from typing import Dict, List, Optional

import boto3
import requests
import yaml
from botocore.exceptions import ClientError, NoCredentialsError, WaiterError

from console import confirm, parse_parameters
from permission_coverage import CoverageVerdict, PermissionResult

DEFAULT_TEMPLATE_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates',
                                     'cortex-xsiam-s3-collector.yaml')
DEFAULT_STACK_NAME = 'cortex-xsiam-s3-collector'

# CloudFormation resource types to the AWS actions needed to create/update/delete them
CF_RESOURCE_PERMISSIONS = {
    'AWS::IAM::Role': ['iam:CreateRole', 'iam:GetRole', 'iam:DeleteRole', 'iam:UpdateAssumeRolePolicy',
                       'iam:PutRolePolicy', 'iam:GetRolePolicy', 'iam:DeleteRolePolicy', 'iam:TagRole'],
    'AWS::IAM::Policy': ['iam:CreatePolicy', 'iam:GetPolicy', 'iam:DeletePolicy', 'iam:AttachRolePolicy'],
    'AWS::SQS::Queue': ['sqs:CreateQueue', 'sqs:DeleteQueue', 'sqs:GetQueueAttributes',
                        'sqs:SetQueueAttributes', 'sqs:TagQueue'],
    'AWS::SQS::QueuePolicy': ['sqs:SetQueueAttributes', 'sqs:GetQueueAttributes'],
    'AWS::S3::BucketPolicy': ['s3:PutBucketPolicy', 's3:GetBucketPolicy', 's3:DeleteBucketPolicy'],
    'AWS::KMS::Key': ['kms:CreateKey', 'kms:PutKeyPolicy', 'kms:ScheduleKeyDeletion'],
    'AWS::Lambda::Function': ['lambda:CreateFunction', 'lambda:DeleteFunction', 'lambda:GetFunction'],
    'AWS::SNS::Topic': ['sns:CreateTopic', 'sns:DeleteTopic', 'sns:SetTopicAttributes'],
}

# Actions any stack operation needs regardless of template content
ESSENTIAL_PERMISSIONS = [
    'cloudformation:CreateStack',
    'cloudformation:DescribeStacks',
    'cloudformation:DescribeStackEvents',
    'cloudformation:GetTemplateSummary',
    'sts:GetCallerIdentity',
]

# CloudFormation intrinsic functions
CF_TAGS = [
    'Ref', 'GetAtt', 'GetAZs', 'ImportValue', 'Join', 'Split', 'Select', 'Sub',
    'Base64', 'Cidr', 'FindInMap', 'If', 'Not', 'And', 'Or', 'Equals', 'Condition', 'Transform'
]

ASSUMED_ROLE_ARN = re.compile(r'^arn:(?P<partition>[^:]+):sts::(?P<account>\d+):assumed-role/(?P<role>[^/]+)/.+$')


class CloudFormationLoader(yaml.SafeLoader):
    """YAML loader for CloudFormation templates with intrinsic function support"""


def construct_cloudformation_tag(loader, tag_suffix, node):
    """Generic constructor for CloudFormation intrinsic functions"""
    # !Ref is the only short form without the Fn:: prefix
    key = tag_suffix if tag_suffix in ('Ref', 'Condition') else 'Fn::' + tag_suffix
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
        if tag_suffix == 'GetAtt':
            value = value.split('.', 1)
        return {key: value}
    if isinstance(node, yaml.SequenceNode):
        return {key: loader.construct_sequence(node, deep=True)}
    if isinstance(node, yaml.MappingNode):
        return {key: loader.construct_mapping(node, deep=True)}
    return {key: None}


for _tag in CF_TAGS:
    CloudFormationLoader.add_constructor(
        f'!{_tag}',
        lambda loader, node, tag=_tag: construct_cloudformation_tag(loader, tag, node)
    )


def parse_cloudformation_template(template_content: str) -> Dict:
    """Parse a CloudFormation template, keeping intrinsic functions as {'Fn::X': ...} dicts"""
    try:
        # Safe: CloudFormationLoader inherits from yaml.SafeLoader
        template = yaml.load(template_content, Loader=CloudFormationLoader)  # nosec B506
    except yaml.YAMLError as e:
        print(f"❌ Error parsing CloudFormation template: {e}")
        return {}
    return template if isinstance(template, dict) else {}


def extract_actions_from_policy_document(policy_doc: Dict) -> List[str]:
    """AWS actions granted by the Allow statements of a policy document"""
    actions = []
    if not isinstance(policy_doc, dict):
        return actions

    statements = policy_doc.get('Statement', [])
    if not isinstance(statements, list):
        statements = [statements]

    for statement in statements:
        # Conditional statements: {'Fn::If': [condition, statement, statement]}
        if isinstance(statement, dict) and 'Fn::If' in statement:
            branches = statement['Fn::If'][1:]
            actions.extend(extract_actions_from_policy_document({'Statement': branches}))
            continue
        if not isinstance(statement, dict) or statement.get('Effect') != 'Allow':
            continue

        statement_actions = statement.get('Action', [])
        if isinstance(statement_actions, str):
            statement_actions = [statement_actions]
        for action in statement_actions:
            if isinstance(action, str) and ':' in action:
                actions.append(action)
    return actions


def extract_required_permissions(template: Dict) -> List[str]:
    """Actions the caller needs to create every resource in the template"""
    required = set(ESSENTIAL_PERMISSIONS)
    resources = template.get('Resources') or {}

    for resource_config in resources.values():
        resource_type = resource_config.get('Type', '')
        required.update(CF_RESOURCE_PERMISSIONS.get(resource_type, []))

        if resource_type == 'AWS::IAM::Role':
            properties = resource_config.get('Properties', {})
            if properties.get('Policies'):
                required.add('iam:PutRolePolicy')
            if properties.get('ManagedPolicyArns'):
                required.add('iam:AttachRolePolicy')

    return sorted(required)


def extract_granted_permissions(template: Dict) -> Dict[str, List[str]]:
    """Actions the template's IAM roles grant, keyed by logical resource id"""
    granted = {}
    for logical_id, resource_config in (template.get('Resources') or {}).items():
        if resource_config.get('Type') != 'AWS::IAM::Role':
            continue
        actions = []
        for policy in resource_config.get('Properties', {}).get('Policies', []):
            actions.extend(extract_actions_from_policy_document(policy.get('PolicyDocument', {})))
        granted[logical_id] = sorted(set(actions))
    return granted


def missing_parameters(template: Dict, parameters: Dict[str, str]) -> List[str]:
    """Template parameters without a default that were not supplied"""
    missing = []
    for name, definition in (template.get('Parameters') or {}).items():
        if 'Default' not in (definition or {}) and name not in parameters:
            missing.append(name)
    return missing


class CollectorChecker:
    """Checks and deploys the Cortex XSIAM S3 collector template"""

    def __init__(self, profile: str = None, region: str = 'us-east-1', session: boto3.Session = None):
        self.profile = profile
        self.region = region
        if session is not None:
            self.session = session
        else:
            self.session = boto3.Session(profile_name=profile) if profile else boto3.Session()

    def fetch_template_from_url(self, url: str) -> Optional[str]:
        try:
            print(f"📥 Fetching template from: {url}")
            response = requests.get(url, timeout=30)
            response.raise_for_status()
            return response.text
        except requests.exceptions.RequestException as e:
            print(f"❌ Error fetching template from URL: {e}")
            return None

    def load_template(self, template_file: str = None, template_url: str = None) -> Optional[str]:
        if template_url:
            return self.fetch_template_from_url(template_url)

        path = template_file or DEFAULT_TEMPLATE_FILE
        try:
            print(f"📖 Reading template from file: {path}")
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            print(f"❌ Could not read template file: {e}")
            return None

    def get_caller_arn(self) -> str:
        sts_client = self.session.client('sts', region_name=self.region)
        return sts_client.get_caller_identity()['Arn']

    def resolve_simulation_arn(self, caller_arn: str) -> str:
        """IAM role ARN (with its path) behind an STS assumed-role ARN; other ARNs pass through"""
        match = ASSUMED_ROLE_ARN.match(caller_arn)
        if not match:
            return caller_arn

        role_name = match.group('role')
        try:
            iam_client = self.session.client('iam', region_name=self.region)
            return iam_client.get_role(RoleName=role_name)['Role']['Arn']
        except ClientError as e:
            # Without iam:GetRole the path is unknown; assume the role sits at the root path
            fallback = f"arn:{match.group('partition')}:iam::{match.group('account')}:role/{role_name}"
            print(f"⚠️  Could not look up role '{role_name}' ({e}); simulating as {fallback}")
            return fallback

    def simulate_permissions(self, caller_arn: str, actions: List[str]) -> List[PermissionResult]:
        """Run the IAM policy simulator for every action"""
        source_arn = self.resolve_simulation_arn(caller_arn)
        decisions = {}

        try:
            iam_client = self.session.client('iam', region_name=self.region)
            request = {'PolicySourceArn': source_arn, 'ActionNames': list(actions)}
            while True:
                response = iam_client.simulate_principal_policy(**request)
                for result in response.get('EvaluationResults', []):
                    decisions[result['EvalActionName'].lower()] = result['EvalDecision']
                if not response.get('IsTruncated'):
                    break
                request['Marker'] = response['Marker']
        except ClientError as e:
            print(f"⚠️  Could not run the IAM policy simulator for {source_arn}: {e}")
            return [PermissionResult(action, CoverageVerdict.UNKNOWN) for action in actions]

        results = []
        for action in actions:
            decision = decisions.get(action.lower())
            if decision is None:
                verdict = CoverageVerdict.UNKNOWN
            elif decision == 'allowed':
                verdict = CoverageVerdict.GRANTED
            else:
                verdict = CoverageVerdict.DENIED
            results.append(PermissionResult(action, verdict))
        return results

    def deploy_stack(self, template_body: str, stack_name: str, parameters: Dict[str, str],
                     auto_approve: bool) -> Optional[Dict]:
        """Create the stack and wait for it; returns the stack outputs"""
        if not auto_approve:
            print(f"⏭  Skipping deployment of stack '{stack_name}'.")
            return None

        cf_client = self.session.client('cloudformation', region_name=self.region)
        print(f"🚀 Creating stack '{stack_name}' in {self.region}...")
        try:
            cf_client.create_stack(
                StackName=stack_name,
                TemplateBody=template_body,
                Parameters=[{'ParameterKey': k, 'ParameterValue': v} for k, v in parameters.items()],
                Capabilities=['CAPABILITY_NAMED_IAM'],
            )
            cf_client.get_waiter('stack_create_complete').wait(StackName=stack_name)
            stack = cf_client.describe_stacks(StackName=stack_name)['Stacks'][0]
        except (ClientError, WaiterError) as e:
            print(f"❌ Stack deployment failed: {e}")
            return None

        outputs = {o['OutputKey']: o['OutputValue'] for o in stack.get('Outputs', [])}
        print(f"✅ Stack '{stack_name}' created.")
        for key, value in outputs.items():
            print(f"   {key}: {value}")
        return outputs

    def print_report(self, caller_arn: str, results: List[PermissionResult], granted: Dict[str, List[str]]):
        print("\n" + "=" * 80)
        print("🛡️  CORTEX XSIAM - S3 COLLECTOR PERMISSION REPORT")
        print("=" * 80)
        print(f"\n📊 IDENTITY: {caller_arn}")
        print(f"   Region: {self.region}")
        print(f"   Profile: {self.profile or 'default'}")

        print("\n📋 DEPLOYMENT PERMISSIONS:")
        for result in results:
            if result.verdict is CoverageVerdict.GRANTED:
                print(f"   ✅ {result.permission}")
            elif result.verdict is CoverageVerdict.DENIED:
                print(f"   ❌ {result.permission}")
            else:
                print(f"   ❔ {result.permission}")

        if granted:
            print("\n🔑 PERMISSIONS GRANTED TO CORTEX BY THE TEMPLATE:")
            for logical_id, actions in granted.items():
                print(f"   {logical_id}: {', '.join(actions)}")
        print("\n" + "=" * 80)


def parse_arguments(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check (and optionally deploy) the Cortex XSIAM S3 collector CloudFormation template"
    )
    parser.add_argument('--profile', help='AWS profile to use for authentication')
    parser.add_argument('--region', default='us-east-1', help='AWS region (default: us-east-1)')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--template-file', help='Path to the CloudFormation template (default: bundled template)')
    source.add_argument('--template-url', help='URL of the CloudFormation template')
    parser.add_argument('--deploy', action='store_true', help='Deploy the stack after the permission check')
    parser.add_argument('--stack-name', default=DEFAULT_STACK_NAME,
                        help=f'Name of the stack to create (default: {DEFAULT_STACK_NAME})')
    parser.add_argument('--parameter', action='append', default=[], metavar='KEY=VALUE',
                        help='Template parameter (repeatable)')
    parser.add_argument('--auto-approve', action='store_true', help='Deploy without prompting')
    return parser.parse_args(argv)


def main(argv: List[str] = None):
    """Main function"""
    args = parse_arguments(argv)
    checker = CollectorChecker(profile=args.profile, region=args.region)

    template_body = checker.load_template(args.template_file, args.template_url)
    template = parse_cloudformation_template(template_body) if template_body else {}
    if not template:
        print("❌ ERROR: Cannot check permissions without a valid template.")
        sys.exit(1)

    try:
        caller_arn = checker.get_caller_arn()
    except NoCredentialsError:
        print("❌ Error: No AWS credentials configured. Please configure your credentials.")
        sys.exit(1)
    except ClientError as e:
        print(f"❌ Error resolving the caller identity: {e}")
        sys.exit(1)

    print("🔍 Simulating the permissions needed to deploy the template...")
    results = checker.simulate_permissions(caller_arn, extract_required_permissions(template))
    checker.print_report(caller_arn, results, extract_granted_permissions(template))

    verdicts = {result.verdict for result in results}

    if args.deploy:
        try:
            parameters = parse_parameters(args.parameter)
        except argparse.ArgumentTypeError as e:
            print(f"❌ {e}")
            sys.exit(1)

        missing = missing_parameters(template, parameters)
        if missing:
            print(f"❌ Missing template parameters: {', '.join(missing)}")
            sys.exit(1)
        if CoverageVerdict.DENIED in verdicts:
            print("⚠️  Some required permissions are denied; the deployment will likely fail.")

        approved = confirm(f"Deploy stack '{args.stack_name}'?", args.auto_approve)
        outputs = checker.deploy_stack(template_body, args.stack_name, parameters, approved)
        if approved and outputs is None:
            sys.exit(2 if CoverageVerdict.DENIED in verdicts else 1)

    if CoverageVerdict.DENIED in verdicts:
        sys.exit(2)
    elif CoverageVerdict.UNKNOWN in verdicts:
        sys.exit(1)
    else:
        sys.exit(0)


if __name__ == '__main__':
    main()
