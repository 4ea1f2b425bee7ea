"""Configuration management for the GitLab to Azure DevOps migration tool."""

from typing import Optional, Dict, Any
from pathlib import Path
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import yaml
from dotenv import load_dotenv


class GitLabInstanceConfig(BaseModel):
    """Configuration for the source GitLab instance."""

    url: str = Field(..., description='GitLab instance URL')
    token: Optional[str] = Field(default=None, description='Personal access token')
    oauth_token: Optional[str] = Field(default=None, description='OAuth access token')
    api_version: str = Field(default='v4', description='GitLab API version')
    timeout: int = Field(default=30, description='Request timeout in seconds')

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Validate GitLab URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Timeout must be positive')
        return v

    @model_validator(mode='after')
    def validate_auth_complete(self):
        """Ensure at least one authentication method is provided."""
        if not self.token and not self.oauth_token:
            raise ValueError('Either token or oauth_token must be provided')
        return self


class AzureDevOpsConfig(BaseModel):
    """Configuration for the destination Azure DevOps organization."""

    organization_url: str = Field(
        ..., description='Organization URL, e.g. https://dev.azure.com/contoso'
    )
    token: str = Field(..., description='Personal access token (PAT)')
    api_version: str = Field(default='7.1', description='REST API version')
    timeout: int = Field(default=30, description='Request timeout in seconds')

    @field_validator('organization_url')
    @classmethod
    def validate_url(cls, v):
        """Validate organization URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('token')
    @classmethod
    def validate_token(cls, v):
        """Validate the PAT is not blank."""
        if not v or not v.strip():
            raise ValueError('Azure DevOps token must not be empty')
        return v

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Timeout must be positive')
        return v


class MigrationConfig(BaseModel):
    """Migration-specific configuration."""

    migrations_dir: str = Field(
        default='migrations', description='Root directory for migration workspaces'
    )
    allow_existing_batch: bool = Field(
        default=False,
        description='Extend an existing batch workspace without asking',
    )
    verify_after_push: bool = Field(
        default=True, description='Compare refs on the destination after pushing'
    )
    push_lfs: bool = Field(
        default=True, description='Push LFS objects when the project uses LFS'
    )


class GitConfig(BaseModel):
    """Git operations configuration."""

    timeout: int = Field(
        default=3600, description='Git operation timeout in seconds (default: 1 hour)'
    )
    lfs_enabled: bool = Field(
        default=True, description='Enable Git LFS support for large files'
    )

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Git timeout must be positive')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Log format')

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


TEMPLATE_CONFIG: Dict[str, Any] = {
    'source': {
        'url': 'https://gitlab.example.com',
        'token': 'your-gitlab-personal-access-token',
        'api_version': 'v4',
        'timeout': 30,
    },
    'destination': {
        'organization_url': 'https://dev.azure.com/your-organization',
        'token': 'your-azure-devops-pat',
        'api_version': '7.1',
        'timeout': 30,
    },
    'migration': {
        'migrations_dir': 'migrations',
        'allow_existing_batch': False,
        'verify_after_push': True,
        'push_lfs': True,
    },
    'git': {
        'timeout': 3600,
        'lfs_enabled': True,
    },
    'logging': {
        'level': 'INFO',
        'file': 'migration.log',
    },
}


class Config(BaseModel):
    """Main configuration class for the migration tool."""

    model_config = ConfigDict(extra='forbid')

    source: GitLabInstanceConfig = Field(..., description='Source GitLab instance')
    destination: AzureDevOpsConfig = Field(
        ..., description='Destination Azure DevOps organization'
    )
    migration: MigrationConfig = Field(
        default_factory=MigrationConfig, description='Migration settings'
    )
    git: GitConfig = Field(
        default_factory=GitConfig, description='Git operations settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ValueError(f'Configuration file is not a mapping: {config_path}')

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        config_data = {
            'source': {
                'url': os.getenv('GITLAB_URL'),
                'token': os.getenv('GITLAB_TOKEN'),
            },
            'destination': {
                'organization_url': os.getenv('ADO_ORGANIZATION_URL'),
                'token': os.getenv('ADO_PAT'),
            },
            'migration': {
                'migrations_dir': os.getenv('MIGRATIONS_DIR', 'migrations'),
                'allow_existing_batch': os.getenv(
                    'ALLOW_EXISTING_BATCH', 'false'
                ).lower()
                == 'true',
            },
            'git': {
                'timeout': int(os.getenv('GIT_TIMEOUT', 3600)),
                'lfs_enabled': os.getenv('GIT_LFS_ENABLED', 'true').lower() == 'true',
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                TEMPLATE_CONFIG, f, default_flow_style=False, indent=2, sort_keys=False
            )
