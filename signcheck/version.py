# signcheck/version.py
# Version constants. Single authoritative definition.
# Referenced by report_serializer.py and failure_handler.py for version
# stamping of written records.

__version__: str = "1.0.0"

# Format version of the JSON report written by ReportSerializer.
# A change to the report layout requires an increment.
REPORT_FORMAT_VERSION: str = "1.0.0"
