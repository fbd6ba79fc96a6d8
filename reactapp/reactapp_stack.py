import json
import os

from aws_cdk import (
    CfnOutput,
    RemovalPolicy,
    Stack,
    aws_route53 as _route53,
    aws_ssm as _ssm,
)
from constructs import Construct

from reactapp.common import SSM_PATH_BUCKET_NAME, Domain
from reactapp.patterns.react_app import ReactApp

TRUTHY = ("true", "1", "yes")


class ReactAppStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        #
        # inputs
        #
        bucket_name = self._setting("bucket_name", "react-app")
        domain = self._domain()
        removal_policy = (
            RemovalPolicy.RETAIN if self._flag("retain_bucket") else RemovalPolicy.DESTROY
        )

        #
        # react app
        #
        self.react_app = ReactApp(
            self,
            "ReactApp",
            bucket_name=bucket_name,
            frontend_path=self._setting("frontend_path", "frontend"),
            frontend_build_path=self._setting("frontend_build_path"),
            build_command=self._setting("build_command"),
            config=self._app_config(),
            domain=domain,
            do_not_build=self._flag("do_not_build"),
            do_not_upload=self._flag("do_not_upload"),
            removal_policy=removal_policy,
            with_cloudfront_distribution=self._flag("with_cloudfront_distribution"),
        )
        bucket = self.react_app.web_app_bucket

        #
        # outputs
        #
        CfnOutput(self, "WebAppBucketNameCfn", value=bucket.bucket_name)
        _ssm.StringParameter(
            self,
            "WebAppBucketNameSsm",
            parameter_name=SSM_PATH_BUCKET_NAME.format(
                bucket_name=domain.domain_name if domain else bucket_name
            ),
            string_value=bucket.bucket_name,
        )
        if self.react_app.web_distribution is not None:
            CfnOutput(
                self,
                "DistributionDomainNameCfn",
                value=self.react_app.web_distribution.distribution_domain_name,
            )
        else:
            # bucket is only reachable directly when not behind cloudfront
            CfnOutput(self, "WebAppWebsiteUrlCfn", value=bucket.bucket_website_url)

    def _setting(self, key, default=None):
        value = self.node.try_get_context(key)
        if value is None:
            value = os.environ.get(key.upper())
        return default if value is None else value

    def _flag(self, key):
        value = self._setting(key, False)
        if isinstance(value, bool):
            return value
        return str(value).lower() in TRUTHY

    def _app_config(self):
        value = self._setting("app_config")
        if isinstance(value, str):
            return json.loads(value)
        return value

    def _domain(self):
        domain_name = self._setting("domain_name")
        if not domain_name:
            return None
        certificate_arn = self._setting("domain_certificate_arn")
        hosted_zone_id = self._setting("hosted_zone_id")
        if not certificate_arn or not hosted_zone_id:
            raise ValueError(
                f"Domain '{domain_name}' needs domain_certificate_arn and hosted_zone_id"
            )
        aliases = self._setting("domain_aliases")
        if isinstance(aliases, str):
            aliases = [alias.strip() for alias in aliases.split(",") if alias.strip()]
        hosted_zone = _route53.HostedZone.from_hosted_zone_attributes(
            self,
            "HostedZone",
            hosted_zone_id=hosted_zone_id,
            zone_name=self._setting("hosted_zone_name", domain_name),
        )
        return Domain(
            domain_name=domain_name,
            domain_certificate_arn=certificate_arn,
            hosted_zone=hosted_zone,
            aliases=aliases,
        )
