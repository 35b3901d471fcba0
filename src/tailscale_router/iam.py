"""IAM roles for the router task.

Each role gets exactly the permissions the container needs: the execution
role reads one secret, the task role writes to one log group.
"""

from dataclasses import dataclass

from aws_cdk import aws_iam as iam
from aws_cdk import aws_secretsmanager as secretsmanager
from constructs import Construct

from .names import ResourceNames

ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
TASK_EXECUTION_MANAGED_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"


def secret_policy_arn(secret: secretsmanager.ISecret) -> str:
    """ARN that matches the secret in an IAM policy.

    Secrets imported by name or partial ARN lack the random suffix, so the
    policy matches any six characters in its place.
    """
    return secret.secret_full_arn or f"{secret.secret_arn}-??????"


@dataclass(frozen=True)
class RolePair:
    """Execution and task roles for the router task definition."""

    execution_role: iam.Role
    task_role: iam.Role


def create_ecs_roles(
    scope: Construct,
    names: ResourceNames,
    auth_key_secret: secretsmanager.ISecret,
    log_group_arn: str,
) -> RolePair:
    """Create the task execution role and the task role.

    Args:
        scope: Parent construct
        names: Resource names for this VPC
        auth_key_secret: Secret holding the auth key
        log_group_arn: ARN of the router's log group

    Returns:
        Both roles
    """
    execution_role = iam.Role(
        scope,
        "TaskExecutionRole",
        role_name=names.execution_role,
        assumed_by=iam.ServicePrincipal(ECS_TASKS_PRINCIPAL),
        managed_policies=[
            iam.ManagedPolicy.from_aws_managed_policy_name(TASK_EXECUTION_MANAGED_POLICY),
        ],
    )

    iam.ManagedPolicy(
        scope,
        "TaskSecretsPolicy",
        managed_policy_name=names.secrets_policy,
        description=f"Permissions for ECS task execution to read secrets for Tailscale in VPC {names.vpc_id}",
        statements=[
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["secretsmanager:GetSecretValue"],
                resources=[secret_policy_arn(auth_key_secret)],
            ),
        ],
        roles=[execution_role],
    )

    task_role = iam.Role(
        scope,
        "TaskRole",
        role_name=names.task_role,
        assumed_by=iam.ServicePrincipal(ECS_TASKS_PRINCIPAL),
    )

    iam.ManagedPolicy(
        scope,
        "TaskLogsPolicy",
        managed_policy_name=names.logs_policy,
        description=f"Permissions for ECS task to write logs for Tailscale to VPC {names.vpc_id}",
        statements=[
            # DescribeLogGroups has no resource-level permissions
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["logs:DescribeLogGroups"],
                resources=["*"],
            ),
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    "logs:CreateLogStream",
                    "logs:DescribeLogStreams",
                    "logs:PutLogEvents",
                ],
                resources=[log_group_arn],
            ),
        ],
        roles=[task_role],
    )

    return RolePair(execution_role=execution_role, task_role=task_role)
