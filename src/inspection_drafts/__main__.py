from inspection_drafts.cli import run_entrypoint

run_entrypoint()
