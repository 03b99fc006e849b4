"""Task execution role for the Fargate service."""

import json
from collections.abc import Callable
from typing import Any

from botocore.exceptions import ClientError

TASK_EXECUTION_POLICY_ARN = (
    "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
)
ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"

EXECUTION_TRUST_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": ECS_TASKS_PRINCIPAL},
                "Action": "sts:AssumeRole",
            }
        ],
    }
)


def ensure_execution_role(
    session: Any,
    role_name: str,
    reporter: Callable[[str], None],
) -> str:
    """Ensure the task execution role exists and return its ARN.

    ECS assumes this role to pull the workload image and write container
    logs. An existing role is reused and only gains the managed policy if
    it lacks it.
    """
    iam = session.client("iam")
    reporter(f"Ensuring task execution role {role_name}")

    role_arn = _existing_role_arn(iam, role_name)
    if role_arn is None:
        created = iam.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=EXECUTION_TRUST_POLICY,
            Description="Lets ECS pull images and write logs for dd-agent tasks",
        )
        role_arn = str(created["Role"]["Arn"])

    listed = iam.list_attached_role_policies(RoleName=role_name)
    if not any(
        policy.get("PolicyArn") == TASK_EXECUTION_POLICY_ARN
        for policy in listed.get("AttachedPolicies", [])
    ):
        iam.attach_role_policy(RoleName=role_name, PolicyArn=TASK_EXECUTION_POLICY_ARN)
    return role_arn


def _existing_role_arn(iam: Any, role_name: str) -> str | None:
    try:
        role = iam.get_role(RoleName=role_name)["Role"]
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") == "NoSuchEntity":
            return None
        raise
    return str(role["Arn"])
