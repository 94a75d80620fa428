from aws_cdk import (
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
    Duration,
)
from constructs import Construct


class AlbConstruct(Construct):

    @property
    def load_balancer(self) -> elbv2.ApplicationLoadBalancer:
        return self._alb

    @property
    def application_target_group(self) -> elbv2.ApplicationTargetGroup:
        return self._application_target_group

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 alb_security_group: ec2.ISecurityGroup,
                 vpc_subnets: ec2.SubnetSelection,
                 listener_port: int,
                 target_port: int,
                 health_check_path: str = "/health",
                 **kwargs):
        super().__init__(scope, id, **kwargs)

        self._alb = elbv2.ApplicationLoadBalancer(
            self,
            "FractalAlb",
            vpc=vpc,
            internet_facing=True,
            security_group=alb_security_group,
            vpc_subnets=vpc_subnets
        )

        # Ingress on the listener port is managed by the ALB security group owner
        self.listener = self._alb.add_listener(
            "HttpListener",
            port=listener_port,
            protocol=elbv2.ApplicationProtocol.HTTP,
            open=False
        )

        self._application_target_group = elbv2.ApplicationTargetGroup(
            self,
            "EngineTargetGroup",
            vpc=vpc,
            port=target_port,
            protocol=elbv2.ApplicationProtocol.HTTP,
            target_type=elbv2.TargetType.IP,
            health_check=elbv2.HealthCheck(
                path=health_check_path,
                healthy_http_codes="200",
                interval=Duration.seconds(30)
            ),
            deregistration_delay=Duration.seconds(10)
        )

        self.listener.add_target_groups(
            "AttachEngineTg",
            target_groups=[self._application_target_group]
        )
