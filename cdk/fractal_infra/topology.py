from dataclasses import dataclass
from typing import Optional

import aws_cdk as cdk
from constructs import Construct

from fractal_infra import config
from fractal_infra.stacks.database_stack import DatabaseStack
from fractal_infra.stacks.dogecoin_stack import DogecoinStack
from fractal_infra.stacks.engine_stack import DogecoinConnection, EngineStack
from fractal_infra.stacks.network_stack import NetworkStack


@dataclass
class FractalTopology:
    network: NetworkStack
    dogecoin: DogecoinStack
    database: DatabaseStack
    engine: EngineStack


def build_topology(scope: Construct,
                   *,
                   env: Optional[cdk.Environment] = None,
                   database_name: str = config.DEFAULT_DATABASE_NAME) -> FractalTopology:
    """Declare the four stacks and wire each one's outputs into the next."""

    # Network Layer
    network = NetworkStack(scope, "NetworkStack", env=env)

    # Dogecoin node
    dogecoin = DogecoinStack(
        scope,
        "DogecoinStack",
        vpc=network.vpc,
        doge_security_group=network.doge_sg,
        namespace=network.namespace,
        env=env
    )

    # Database Layer
    database = DatabaseStack(
        scope,
        "DatabaseStack",
        vpc=network.vpc,
        rds_security_group=network.rds_sg,
        database_name=database_name,
        env=env
    )

    # Application Layer
    engine = EngineStack(
        scope,
        "EngineStack",
        vpc=network.vpc,
        alb_security_group=network.alb_sg,
        engine_security_group=network.engine_sg,
        db_host=database.db_host,
        db_port=database.db_port,
        db_secret=database.rds_secret,
        database_name=database_name,
        dogecoin=DogecoinConnection(
            host=dogecoin.service_discovery_name,
            rpc_port=dogecoin.rpc_port,
            zmq_port=dogecoin.zmq_port
        ),
        env=env
    )

    dogecoin.add_dependency(network)
    database.add_dependency(network)
    # Engine must deploy after the Dogecoin node and the database
    engine.add_dependency(dogecoin)
    engine.add_dependency(database)

    return FractalTopology(network=network, dogecoin=dogecoin, database=database, engine=engine)
