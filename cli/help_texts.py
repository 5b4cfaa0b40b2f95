"""
Centralized Help Text Constants

CLI help text constants for commands and options, plus the exit codes
the commands return.
"""

# Exit codes for different error types
class ExitCodes:
    SUCCESS = 0
    GENERAL_ERROR = 1
    MISSING_REQUIRED_OPTION = 2
    INVALID_CONFIGURATION = 3
    INVALID_INPUT = 4
    QUALITY_GATE_FAILED = 5

# Command help texts
EXPORT_HELP = "Export a sprint review presentation to one or more formats."
FORMATS_HELP = "List the export formats and quality tiers."
VALIDATE_RESULT_HELP = "Run the quality gate against an existing export artifact."
SERVE_HELP = "Run the REST API with uvicorn."

# Option help texts
INPUT_HELP = (
    "Path to an export bundle (.json) holding the presentation, the sprint "
    "issues, the upcoming issues and optional sprint metrics."
)

FORMAT_OPTION_HELP = (
    "Target format. Repeat to export several formats in one run:\n"
    "  pdf, html, markdown, metrics, executive, digest, advanced-digest"
)

QUALITY_HELP = "Quality tier (low, medium, high). Affects image size and size limits."

OUTPUT_DIR_HELP = (
    "Directory for exported files. Overrides configuration file settings. "
    "If not specified, uses the configured output directory or './exports'."
)

CONFIG_HELP = (
    "Path to configuration file (.yaml). If not specified, looks for:\n"
    "  1. ./.sprint-export/config.yaml (project config)\n"
    "  2. ~/.sprint-export/config.yaml (user config)\n"
    "  3. Built-in defaults"
)

LOG_LEVEL_HELP = "Logging level for detailed output. Use DEBUG for troubleshooting."

REPORT_HELP = "Write the quality report(s) as JSON to this path."
