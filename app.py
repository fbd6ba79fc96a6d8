#!/usr/bin/env python3

import aws_cdk as cdk

from reactapp.reactapp_stack import ReactAppStack

app = cdk.App()

ReactAppStack(
    scope=app,
    construct_id="reactapp-stack",
    description="react app hosted in s3, optionally behind cloudfront",
)

app.synth()
