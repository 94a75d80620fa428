from aws_cdk import aws_ec2 as ec2
from constructs import Construct


class SecurityGroupConstruct(Construct):
    """Security groups for the ALB, Engine, RDS and Dogecoin tiers.

    Ingress is only opened along ALB -> Engine -> {RDS, Dogecoin}; the ALB
    itself accepts HTTP from anywhere.
    """

    @property
    def alb_security_group(self) -> ec2.SecurityGroup:
        return self._alb_sg

    @property
    def engine_security_group(self) -> ec2.SecurityGroup:
        return self._engine_sg

    @property
    def rds_security_group(self) -> ec2.SecurityGroup:
        return self._rds_sg

    @property
    def doge_security_group(self) -> ec2.SecurityGroup:
        return self._doge_sg

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 listener_port: int,
                 engine_port: int,
                 db_port: int,
                 doge_rpc_port: int,
                 doge_p2p_port: int,
                 doge_zmq_port: int,
                 **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        self._alb_sg = ec2.SecurityGroup(
            self,
            "AlbSg",
            vpc=vpc,
            description="ALB security group",
            allow_all_outbound=True
        )

        self._alb_sg.add_ingress_rule(
            peer=ec2.Peer.any_ipv4(),
            connection=ec2.Port.tcp(listener_port),
            description="HTTP from anywhere"
        )

        self._engine_sg = ec2.SecurityGroup(
            self,
            "EngineSg",
            vpc=vpc,
            description="Fractal Engine security group",
            allow_all_outbound=True
        )

        self._rds_sg = ec2.SecurityGroup(
            self,
            "RdsSg",
            vpc=vpc,
            description="RDS security group",
            allow_all_outbound=True
        )

        self._doge_sg = ec2.SecurityGroup(
            self,
            "DogeSg",
            vpc=vpc,
            description="Dogecoin Node security group",
            allow_all_outbound=True
        )

        self._engine_sg.add_ingress_rule(
            peer=self._alb_sg,
            connection=ec2.Port.tcp(engine_port),
            description="Engine RPC from ALB only"
        )

        self._rds_sg.add_ingress_rule(
            peer=self._engine_sg,
            connection=ec2.Port.tcp(db_port),
            description="Postgres from Engine only"
        )

        for port, label in ((doge_rpc_port, "RPC"), (doge_p2p_port, "P2P"), (doge_zmq_port, "ZMQ")):
            self._doge_sg.add_ingress_rule(
                peer=self._engine_sg,
                connection=ec2.Port.tcp(port),
                description=f"Dogecoin {label} from Engine only"
            )
