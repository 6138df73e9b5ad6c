"""Common constants shared across trailalert modules."""

CLOUDTRAIL_PRINCIPAL = "cloudtrail.amazonaws.com"
BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"
ACL_CONDITION_KEY = "s3:x-amz-acl"

DEFAULT_STACK_ID = "CloudTrailAlert"
DEFAULT_KEY_PREFIX = "CloudTrail/logs"
DEFAULT_RETENTION_DAYS = 365
DEFAULT_METRIC_NAME = "ResourceDeletionMetric"
DEFAULT_DELETION_PATTERN = "Delete*"
DEFAULT_LOG_ROLE_ACTIONS = ["logs:CreateLogStream", "logs:PutLogEvents"]

# Logical ids used in the rendered template.
BUCKET_ID = "CloudTrail"
BUCKET_POLICY_ID = "CloudTrailPolicy"
LOG_GROUP_ID = "CloudTrailLogGroup"
LOG_ROLE_ID = "CloudTrailLogRole"
TRAIL_ID = "Trail"
METRIC_FILTER_ID = "ResourceDeletionEventFilter"
ALARM_ID = "ResourceDeletionAlarm"
QUEUE_ID = "TrailReadyQueue"

# Values accepted by CloudWatch Logs for RetentionInDays.
RETENTION_DAYS = (
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
    1096, 1827, 2192, 2557, 2922, 3288, 3653,
)

CONDITION_OPERATORS = {"StringEquals", "StringNotEquals", "StringLike", "ArnLike", "ArnEquals"}

# CloudFormation inline TemplateBody limit for ValidateTemplate.
MAX_TEMPLATE_BODY_BYTES = 51_200

RESOURCE_TYPES = {
    "bucket": "AWS::S3::Bucket",
    "bucket-policy": "AWS::S3::BucketPolicy",
    "log-group": "AWS::Logs::LogGroup",
    "role": "AWS::IAM::Role",
    "trail": "AWS::CloudTrail::Trail",
    "queue": "AWS::SQS::Queue",
    "metric-filter": "AWS::Logs::MetricFilter",
    "alarm": "AWS::CloudWatch::Alarm",
}
