"""
Segmentation schedule: EventBridge rule -> batch segmentation Lambda.
"""

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as _lambda,
    aws_logs as logs,
)
from constructs import Construct


class SegmentationScheduleConstruct(Construct):
    """Periodically re-segment customers whose label is missing or stale."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.IVpc,
        code: _lambda.Code,
        shared_env: dict,
        schedule_hours: int,
        batch_size: int,
        timeout_minutes: int = 15,
    ) -> None:
        super().__init__(scope, construct_id)

        self.batch_lambda = _lambda.Function(
            self,
            "SegmentationBatchHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.segmentation_batch.lambda_handler",
            code=code,
            timeout=Duration.minutes(timeout_minutes),
            memory_size=256,
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            environment=shared_env,
            # One batch at a time keeps classifier load bounded.
            reserved_concurrent_executions=1,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        events.Rule(
            self,
            "SegmentationScheduleRule",
            schedule=events.Schedule.rate(Duration.hours(schedule_hours)),
            targets=[
                targets.LambdaFunction(
                    self.batch_lambda,
                    event=events.RuleTargetInput.from_object({"limit": batch_size}),
                )
            ],
        )
