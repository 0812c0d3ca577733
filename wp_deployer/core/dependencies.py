"""
Service factories injected into routes with Depends.
Tests swap any of these through app.dependency_overrides.
"""
from fastapi import Depends

from wp_deployer.config import settings
from wp_deployer.database.file_store import FileStore, get_credentials_store, get_jobs_store
from wp_deployer.modules.credentials.service import CredentialService
from wp_deployer.modules.deployments.notifier import ProgressNotifier, notifier
from wp_deployer.modules.deployments.orchestrator import DeploymentOrchestrator
from wp_deployer.modules.hosting.connector import HostingConnector, get_hosting_connector
from wp_deployer.modules.jobs.service import JobService
from wp_deployer.modules.templates.service import TemplateRegistry
from wp_deployer.modules.templates.wordpress_org import ArtifactSource, WordPressOrgClient


def get_artifact_source() -> ArtifactSource:
    return WordPressOrgClient()


def get_notifier() -> ProgressNotifier:
    return notifier


def get_job_service(store: FileStore = Depends(get_jobs_store)) -> JobService:
    return JobService(store, settings.uploads_path)


def get_credential_service(
    store: FileStore = Depends(get_credentials_store),
    connector: HostingConnector = Depends(get_hosting_connector),
) -> CredentialService:
    return CredentialService(store, connector)


def get_template_registry(artifacts: ArtifactSource = Depends(get_artifact_source)) -> TemplateRegistry:
    return TemplateRegistry(settings.templates_path, artifacts)


def get_orchestrator(
    jobs: JobService = Depends(get_job_service),
    credentials: CredentialService = Depends(get_credential_service),
    templates: TemplateRegistry = Depends(get_template_registry),
    connector: HostingConnector = Depends(get_hosting_connector),
    artifacts: ArtifactSource = Depends(get_artifact_source),
    progress: ProgressNotifier = Depends(get_notifier),
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(jobs, credentials, templates, connector, artifacts, progress)
