"""
Main CDK Stack for the WhatsApp customer analytics service.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from infrastructure.constructs.api_layer import ApiLayerConstruct, bundled_source
from infrastructure.constructs.data_layer import DataLayerConstruct, SchemaBootstrapConstruct
from infrastructure.constructs.network import NetworkConstruct
from infrastructure.constructs.segmentation_schedule import SegmentationScheduleConstruct
from infrastructure.config.settings import Settings


class WhatsAppAnalyticsStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "whatsapp-analytics")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Network.
        network = NetworkConstruct(self, "Network", environment=settings.environment)

        # 2) Data layer.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            vpc=network.vpc,
            db_instance_class=settings.db_instance_class,
            db_allocated_storage=settings.db_allocated_storage,
        )
        db_secret = data_construct.connection_secret

        shared_env = {
            "ENVIRONMENT": settings.environment,
            "DB_SECRET_ARN": db_secret.secret_arn,
            "MODEL_ID": settings.model_id,
            "SEGMENTATION_BATCH_SIZE": str(settings.segmentation_batch_size),
            "SEGMENTATION_DELAY_SECONDS": str(settings.segmentation_delay_seconds),
        }
        code = bundled_source()

        # Tables and indexes are created on deploy.
        SchemaBootstrapConstruct(
            self,
            "SchemaBootstrap",
            vpc=network.vpc,
            code=code,
            shared_env=shared_env,
            data_layer=data_construct,
        )

        # 3) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            vpc=network.vpc,
            code=code,
            shared_env=shared_env,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # 4) Periodic batch segmentation.
        schedule_construct = SegmentationScheduleConstruct(
            self,
            "SegmentationSchedule",
            vpc=network.vpc,
            code=code,
            shared_env=shared_env,
            schedule_hours=settings.segmentation_schedule_hours,
            batch_size=settings.segmentation_batch_size,
            timeout_minutes=settings.segmentation_timeout_minutes,
        )

        bedrock_policy = iam.PolicyStatement(
            actions=["bedrock:InvokeModel"],
            resources=["*"],
        )
        for fn in (api_construct.main_lambda, schedule_construct.batch_lambda):
            db_secret.grant_read(fn)
            data_construct.db_instance.connections.allow_default_port_from(fn)
            fn.add_to_role_policy(bedrock_policy)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "WebhookUrl", value=f"{api_construct.api.api_endpoint}/api/webhook")
        CfnOutput(self, "DatabaseEndpoint", value=data_construct.db_instance.db_instance_endpoint_address)
