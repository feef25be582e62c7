"""Mirror a directory of markdown work items into Jira issues."""

__version__ = "0.1.0"
