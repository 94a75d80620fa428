from typing import Optional

from aws_cdk import (
    aws_ec2 as ec2,
    aws_servicediscovery as servicediscovery,
)
from constructs import Construct

# Interface endpoints placed in the app tier so tasks reach AWS APIs privately
INTERFACE_ENDPOINTS = (
    ("EcrDockerEndpoint", ec2.InterfaceVpcEndpointAwsService.ECR_DOCKER),
    ("EcrApiEndpoint", ec2.InterfaceVpcEndpointAwsService.ECR),
    ("LogsEndpoint", ec2.InterfaceVpcEndpointAwsService.CLOUDWATCH_LOGS),
    ("SecretsManagerEndpoint", ec2.InterfaceVpcEndpointAwsService.SECRETS_MANAGER),
    ("SsmEndpoint", ec2.InterfaceVpcEndpointAwsService.SSM),
    ("SsmMessagesEndpoint", ec2.InterfaceVpcEndpointAwsService.SSM_MESSAGES),
    ("Ec2MessagesEndpoint", ec2.InterfaceVpcEndpointAwsService.EC2_MESSAGES),
)


class VpcConstruct(Construct):

    @property
    def vpc(self) -> ec2.Vpc:
        return self._vpc

    @property
    def namespace(self) -> servicediscovery.PrivateDnsNamespace:
        return self._namespace

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc_cidr: str,
                 nat_gateways: int,
                 max_azs: Optional[int],
                 namespace_name: str):
        super().__init__(scope, id)

        self._vpc = ec2.Vpc(
            self, "FractalVpc",
            ip_addresses=ec2.IpAddresses.cidr(vpc_cidr),
            max_azs=max_azs,
            nat_gateways=nat_gateways,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24
                ),
                ec2.SubnetConfiguration(
                    name="app",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24
                ),
                ec2.SubnetConfiguration(
                    name="data",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=24
                )
            ]
        )

        self._namespace = servicediscovery.PrivateDnsNamespace(
            self, "ServiceNamespace",
            name=namespace_name,
            vpc=self._vpc,
            description="Private DNS for Fractal services"
        )

        self._vpc.add_gateway_endpoint(
            "S3Endpoint",
            service=ec2.GatewayVpcEndpointAwsService.S3,
            subnets=[
                ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
                ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
            ]
        )

        for endpoint_id, service in INTERFACE_ENDPOINTS:
            self._vpc.add_interface_endpoint(
                endpoint_id,
                service=service,
                subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS)
            )
