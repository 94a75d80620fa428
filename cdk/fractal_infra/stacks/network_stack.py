import logging
from typing import Optional

from aws_cdk import (
    aws_ec2 as ec2,
    aws_servicediscovery as servicediscovery,
    CfnOutput,
    Stack,
)
from constructs import Construct

from fractal_infra import config
from fractal_infra.constructs.security_group_construct import SecurityGroupConstruct
from fractal_infra.constructs.vpc_construct import VpcConstruct

logger = logging.getLogger(__name__)


class NetworkStack(Stack):
    """Shared networking for the Fractal services.

    Deploy this stack first: the Dogecoin, Database and Engine stacks take the
    VPC, namespace and security groups from it.
    """

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 cidr: str = config.DEFAULT_VPC_CIDR,
                 nat_gateways: int = config.DEFAULT_NAT_GATEWAYS,
                 max_azs: Optional[int] = None,
                 namespace_name: str = config.DEFAULT_NAMESPACE_NAME,
                 **kwargs):
        super().__init__(scope, id, **kwargs)

        logger.info("%s: vpc %s, %d NAT gateway(s), namespace %s", id, cidr, nat_gateways, namespace_name)

        self.vpc_construct = VpcConstruct(
            self, "VpcConstruct",
            vpc_cidr=cidr,
            nat_gateways=nat_gateways,
            max_azs=max_azs,
            namespace_name=namespace_name
        )

        self.vpc: ec2.Vpc = self.vpc_construct.vpc
        self.namespace: servicediscovery.PrivateDnsNamespace = self.vpc_construct.namespace

        self.security_groups = SecurityGroupConstruct(
            self, "SecurityGroups",
            vpc=self.vpc,
            listener_port=config.HTTP_PORT,
            engine_port=config.ENGINE_RPC_PORT,
            db_port=config.POSTGRES_PORT,
            doge_rpc_port=config.DOGECOIN_RPC_PORT,
            doge_p2p_port=config.DOGECOIN_P2P_PORT,
            doge_zmq_port=config.DOGECOIN_ZMQ_PORT
        )

        self.alb_sg = self.security_groups.alb_security_group
        self.engine_sg = self.security_groups.engine_security_group
        self.rds_sg = self.security_groups.rds_security_group
        self.doge_sg = self.security_groups.doge_security_group

        CfnOutput(self, "VpcId", value=self.vpc.vpc_id)
        CfnOutput(self, "AlbSgId", value=self.alb_sg.security_group_id)
        CfnOutput(self, "EngineSgId", value=self.engine_sg.security_group_id)
        CfnOutput(self, "RdsSgId", value=self.rds_sg.security_group_id)
        CfnOutput(self, "DogeSgId", value=self.doge_sg.security_group_id)
        CfnOutput(self, "NamespaceId", value=self.namespace.namespace_id)
