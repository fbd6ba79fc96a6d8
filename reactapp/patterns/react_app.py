import logging
import os
import subprocess
from pathlib import Path

from aws_cdk import (
    RemovalPolicy,
    Stack,
    aws_certificatemanager as _acm,
    aws_cloudfront as _cloudfront,
    aws_cloudfront_origins as _origins,
    aws_iam as _iam,
    aws_logs as _logs,
    aws_route53 as _route53,
    aws_route53_targets as _targets,
    aws_s3 as _s3,
    aws_s3_deployment as _s3deploy,
    custom_resources as _cr,
)
from constructs import Construct

from reactapp.common import (
    CONFIG_FILE,
    DEFAULT_BUILD_COMMAND,
    DEFAULT_BUILD_DIR,
    INDEX_DOCUMENT,
    NO_CACHE,
    Domain,
    ReactAppBuildException,
)


class ReactApp(Construct):
    """Builds a react app on synth and deploys it into an S3 bucket.

    The bucket is backed by a CloudFront distribution when requested or when a
    domain is given. `index.html` is never cached by the browser, and
    consecutive deployments do not prune the previous bucket content.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        bucket_name: str,
        frontend_path: str,
        frontend_build_path: str = None,
        build_command: str = None,
        config=None,
        domain: Domain = None,
        do_not_build: bool = False,
        do_not_upload: bool = False,
        removal_policy: RemovalPolicy = None,
        with_cloudfront_distribution: bool = False,
    ) -> None:
        super().__init__(scope, construct_id)
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.setLevel(os.environ.get("LOGGING", logging.DEBUG))

        build_command = build_command or DEFAULT_BUILD_COMMAND
        frontend_build_path = frontend_build_path or str(
            Path(frontend_path, DEFAULT_BUILD_DIR).resolve()
        )
        if domain is not None:
            bucket_name = domain.domain_name
        with_cloudfront_distribution = (
            bool(with_cloudfront_distribution) or domain is not None
        )
        removal_policy = removal_policy or RemovalPolicy.DESTROY

        if do_not_build:
            self.logger.debug(f"Skipping build of '{construct_id}'")
        else:
            self._build(frontend_path, build_command)

        #
        # hosting bucket
        #
        self.web_app_bucket = _s3.Bucket(
            self,
            f"{bucket_name}_Bucket",
            bucket_name=bucket_name,
            website_index_document=INDEX_DOCUMENT,
            website_error_document=INDEX_DOCUMENT,
            removal_policy=removal_policy,
            auto_delete_objects=removal_policy == RemovalPolicy.DESTROY,
            public_read_access=not with_cloudfront_distribution,
            block_public_access=_s3.BlockPublicAccess.BLOCK_ALL
            if with_cloudfront_distribution
            else _s3.BlockPublicAccess(
                block_public_acls=True,
                ignore_public_acls=True,
                block_public_policy=False,
                restrict_public_buckets=False,
            ),
        )

        #
        # cloudfront distribution
        #
        self.web_distribution = None
        if with_cloudfront_distribution:
            self.web_distribution = self._add_distribution(bucket_name, domain)

        #
        # uploads
        #
        if do_not_upload:
            self.logger.debug(f"Skipping upload of '{frontend_build_path}'")
        _s3deploy.BucketDeployment(
            self,
            f"{bucket_name}_Deployment_Assets",
            destination_bucket=self.web_app_bucket,
            sources=[]
            if do_not_upload
            else [
                _s3deploy.Source.asset(
                    frontend_build_path, exclude=[INDEX_DOCUMENT, CONFIG_FILE]
                )
            ],
            prune=False,
        )
        _s3deploy.BucketDeployment(
            self,
            f"{bucket_name}_Deployment_Index",
            destination_bucket=self.web_app_bucket,
            sources=[]
            if do_not_upload
            else [
                _s3deploy.Source.asset(
                    frontend_build_path, exclude=["*", f"!{INDEX_DOCUMENT}"]
                )
            ],
            cache_control=[_s3deploy.CacheControl.from_string(NO_CACHE)],
            prune=False,
        )

        #
        # runtime configuration
        #
        if config is not None:
            self._add_config(bucket_name, config)

    def _build(self, frontend_path, build_command):
        self.logger.info(f"Building static site {frontend_path}")
        try:
            subprocess.run(build_command, cwd=frontend_path, shell=True, check=True)
        except (subprocess.CalledProcessError, OSError) as e:
            self.logger.exception(e)
            raise ReactAppBuildException(
                f'There was a problem building the "{self.node.id}" ReactApp.'
            ) from e

    def _add_distribution(self, bucket_name, domain):
        oai = _cloudfront.OriginAccessIdentity(
            self, "cloudfront-OAI", comment=f"OAI for {bucket_name}"
        )
        # grants s3:GetObject on all objects to the OAI via the bucket policy
        origin = _origins.S3BucketOrigin.with_origin_access_identity(
            self.web_app_bucket, origin_access_identity=oai
        )

        certificate = None
        domain_names = None
        if domain is not None:
            certificate = _acm.Certificate.from_certificate_arn(
                self, "Certificate", domain.domain_certificate_arn
            )
            domain_names = [domain.domain_name, *(domain.aliases or [])]

        distribution = _cloudfront.Distribution(
            self,
            f"{bucket_name}_Distribution",
            default_behavior=_cloudfront.BehaviorOptions(
                origin=origin,
                viewer_protocol_policy=_cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
            ),
            default_root_object=INDEX_DOCUMENT,
            certificate=certificate,
            domain_names=domain_names,
            error_responses=[
                _cloudfront.ErrorResponse(
                    http_status=403, response_http_status=200, response_page_path="/"
                ),
                _cloudfront.ErrorResponse(
                    http_status=404, response_http_status=200, response_page_path="/"
                ),
            ],
        )

        if domain is not None:
            _route53.ARecord(
                self,
                f"{domain.domain_name}_Alias",
                record_name=domain.domain_name,
                target=_route53.RecordTarget.from_alias(
                    _targets.CloudFrontTarget(distribution)
                ),
                zone=domain.hosted_zone,
            )
        return distribution

    def _add_config(self, bucket_name, config):
        """Writes `config` as config.json into the bucket at deploy time.

        Tokens inside `config` (e.g. attributes of other stacks) are resolved
        by CloudFormation before the object is written.
        """
        _cr.AwsCustomResource(
            self,
            f"{bucket_name}_config.json",
            # provider lambda is a singleton per stack, so is its log retention
            log_retention=_logs.RetentionDays.ONE_DAY,
            on_update=_cr.AwsSdkCall(
                service="S3",
                action="putObject",
                parameters={
                    "Body": Stack.of(self).to_json_string(config),
                    "Bucket": self.web_app_bucket.bucket_name,
                    "CacheControl": NO_CACHE,
                    "ContentType": "application/json",
                    "Key": CONFIG_FILE,
                },
                physical_resource_id=_cr.PhysicalResourceId.of("config"),
            ),
            policy=_cr.AwsCustomResourcePolicy.from_statements(
                [
                    _iam.PolicyStatement(
                        actions=["s3:PutObject"],
                        resources=[self.web_app_bucket.arn_for_objects(CONFIG_FILE)],
                    )
                ]
            ),
        )
