import os
from typing import Dict, Any

import boto3
import yaml

from pipefish.exceptions import ConfigurationError


class AWSSessionBuilder:
    """
    Build the boto3 sessions a pipefish run uses.  The CLI may configure its session from the
    ``aws:`` section of ``pipefish.yml``; in Lambda we rely on the normal boto3 credential chain,
    plus the temporary credentials CodePipeline gives us for its artifact bucket.
    """

    class NoSuchAWSProfile(ConfigurationError):
        """
        The AWS profile named in pipefish.yml is not in the user's ``~/.aws/config`` file.
        """
        pass

    def load_config(self, filename: str) -> Dict[str, Any]:
        """
        Return the parsed contents of the pipefish.yml file at ``filename``, or an empty dict if
        there is no such file.
        """
        if not os.path.exists(filename):
            return {}
        try:
            with open(filename, encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"could not read pipefish config file '{filename}': {e}") from e

    def new(self, filename: str = None, use_aws_section: bool = True) -> boto3.session.Session:
        """
        Build a boto3 ``Session`` for the CLI.

        Keyword Args:
            filename: the path to our pipefish.yml file
            use_aws_section: if ``False``, ignore any ``aws:`` section in pipefish.yml

        Raises:
            AWSSessionBuilder.NoSuchAWSProfile: the requested profile is not in ``~/.aws/config``
        """
        aws_config: Dict[str, Any] = {}
        if use_aws_section:
            aws_config = self.load_config(filename or 'pipefish.yml').get('aws', {}) or {}
        region = aws_config.get('region', None)
        if 'access_key' in aws_config:
            # A key pair beats a profile
            return boto3.session.Session(
                aws_access_key_id=aws_config['access_key'],
                aws_secret_access_key=aws_config.get('secret_key'),
                region_name=region
            )
        if 'profile' in aws_config:
            profile = aws_config['profile']
            if profile not in boto3.session.Session().available_profiles:
                raise self.NoSuchAWSProfile(f"AWS profile '{profile}' does not exist in your ~/.aws/config")
            return boto3.session.Session(profile_name=profile, region_name=region)
        return boto3.session.Session(region_name=region)

    def for_artifact_credentials(self, credentials: Dict[str, str]) -> boto3.session.Session:
        """
        Build a boto3 ``Session`` from the temporary credentials CodePipeline hands us
        for reading the job's input artifacts out of the pipeline's artifact bucket.

        Args:
            credentials: the ``artifactCredentials`` block from the CodePipeline job
        """
        return boto3.session.Session(
            aws_access_key_id=credentials['accessKeyId'],
            aws_secret_access_key=credentials['secretAccessKey'],
            aws_session_token=credentials.get('sessionToken', None),
        )
