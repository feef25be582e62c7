from jira_sync.main import run

run()
