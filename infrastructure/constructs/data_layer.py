"""
Data layer construct: RDS PostgreSQL for customers, chat sessions and messages,
plus a deploy-time trigger that creates the schema.
"""

from aws_cdk import (
    RemovalPolicy,
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
    triggers,
)
from constructs import Construct


class DataLayerConstruct(Construct):
    """Provision the analytics database."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        vpc: ec2.IVpc,
        db_instance_class: str,
        db_allocated_storage: int = 20,
    ) -> None:
        super().__init__(scope, construct_id)

        engine = rds.DatabaseInstanceEngine.postgres(
            version=rds.PostgresEngineVersion.VER_16_3
        )
        is_prod = environment == "prod"

        # App user; host/port/dbname are filled in once attached to the instance.
        self.db_secret = secretsmanager.Secret(
            self,
            "DbCredentials",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                secret_string_template='{"username": "analytics_app"}',
                generate_string_key="password",
                exclude_punctuation=True,
            ),
        )

        # Timestamps are stored as naive UTC.
        parameter_group = rds.ParameterGroup(
            self,
            "PostgresParams",
            engine=engine,
            parameters={
                "timezone": "UTC",
                "log_min_duration_statement": "1000",
            },
        )

        self.db_instance = rds.DatabaseInstance(
            self,
            "Postgres",
            engine=engine,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
                if is_prod
                else ec2.SubnetType.PRIVATE_ISOLATED
            ),
            instance_type=ec2.InstanceType(db_instance_class),
            credentials=rds.Credentials.from_secret(self.db_secret),
            database_name="whatsapp_analytics",
            parameter_group=parameter_group,
            allocated_storage=db_allocated_storage,
            storage_encrypted=True,
            backup_retention=Duration.days(7 if is_prod else 0),
            multi_az=is_prod,
            publicly_accessible=False,
            deletion_protection=is_prod,
            removal_policy=RemovalPolicy.RETAIN if is_prod else RemovalPolicy.DESTROY,
        )

        self.connection_secret = self.db_instance.secret


class SchemaBootstrapConstruct(Construct):
    """Create tables and indexes after the database is up, on every deploy."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.IVpc,
        code: _lambda.Code,
        shared_env: dict,
        data_layer: DataLayerConstruct,
    ) -> None:
        super().__init__(scope, construct_id)

        self.function = triggers.TriggerFunction(
            self,
            "SchemaBootstrap",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.schema_bootstrap.lambda_handler",
            code=code,
            timeout=Duration.minutes(2),
            vpc=vpc,
            environment=shared_env,
            log_retention=logs.RetentionDays.ONE_WEEK,
            execute_after=[data_layer.db_instance],
        )
        data_layer.connection_secret.grant_read(self.function)
        data_layer.db_instance.connections.allow_default_port_from(self.function)
