"""gen-mr - AI-generated titles and descriptions for GitHub pull requests and GitLab merge requests.

The package provides the ``gen-pr`` and ``gen-mr`` commands, which draft a
request from the branch diff, let the user review and refine it, and then
create or update it on the hosting platform.
"""

__version__ = "0.1.0"

from genmr.config import GenMRConfig
from genmr.config import load_config
from genmr.workflow import WorkflowOutcome
from genmr.workflow import WorkflowRequest
from genmr.workflow import run_workflow


__all__ = [
    "GenMRConfig",
    "WorkflowOutcome",
    "WorkflowRequest",
    "__version__",
    "load_config",
    "run_workflow",
]
