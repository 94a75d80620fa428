from typing import Optional, Sequence

from aws_cdk import aws_iam as iam
from constructs import Construct

# ECS Exec opens SSM message channels from inside the task
ECS_EXEC_ACTIONS = [
    "ssm:CreateControlChannel",
    "ssm:CreateDataChannel",
    "ssm:OpenControlChannel",
    "ssm:OpenDataChannel",
]


class TaskRolesConstruct(Construct):

    @property
    def execution_role(self) -> iam.Role:
        return self._execution_role

    @property
    def task_role(self) -> iam.Role:
        return self._task_role

    @property
    def operator_policy(self) -> iam.ManagedPolicy:
        return self._operator_policy

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 execution_role_id: str,
                 task_role_id: str,
                 task_role_description: str,
                 extra_task_actions: Optional[Sequence[str]] = None,
                 **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        # Pulls images, writes logs, resolves container secrets
        self._execution_role = iam.Role(
            self, execution_role_id,
            assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AmazonECSTaskExecutionRolePolicy"
                ),
                iam.ManagedPolicy.from_aws_managed_policy_name("AmazonSSMManagedInstanceCore"),
            ]
        )

        self._task_role = iam.Role(
            self, task_role_id,
            assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com"),
            description=task_role_description
        )

        self._task_role.add_to_policy(
            iam.PolicyStatement(
                actions=ECS_EXEC_ACTIONS + list(extra_task_actions or []),
                resources=["*"]
            )
        )

        # Attach to operator users/roles that need to run ECS Exec against the tasks
        self._operator_policy = iam.ManagedPolicy(
            self, "EcsExecOperatorPolicy",
            description="Allows operators to run ECS Exec and manage SSM sessions",
            statements=[
                iam.PolicyStatement(
                    actions=["ecs:ExecuteCommand"],
                    resources=["*"]
                ),
                iam.PolicyStatement(
                    actions=[
                        "ssm:StartSession",
                        "ssm:DescribeSessions",
                        "ssm:TerminateSession",
                    ],
                    resources=["*"]
                ),
                iam.PolicyStatement(
                    actions=["kms:Decrypt"],
                    resources=["*"]
                ),
            ]
        )
