#!/usr/bin/env python3
import logging
import os

import aws_cdk as cdk

from fractal_infra.config import deploy_environment, log_level
from fractal_infra.topology import build_topology

logging.basicConfig(
    level=log_level(os.getenv("LOG_LEVEL")),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = cdk.App()

build_topology(app, env=deploy_environment())

app.synth()
