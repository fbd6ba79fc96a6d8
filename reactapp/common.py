from collections import namedtuple
import logging


logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")


INDEX_DOCUMENT = "index.html"
CONFIG_FILE = "config.json"
DEFAULT_BUILD_COMMAND = "npm run build"
DEFAULT_BUILD_DIR = "build"
NO_CACHE = "max-age=0, no-cache, no-store, must-revalidate"
SSM_PATH_BUCKET_NAME = "/reactapp/{bucket_name}/bucket_name"


# aliases must be covered by the certificate as well
Domain = namedtuple(
    "Domain",
    [
        "domain_name",
        "domain_certificate_arn",
        "hosted_zone",
        "aliases",
    ],
    defaults=[None],
)


class ReactAppBuildException(Exception):
    pass
