"""Step executors importable by CLI tests through --executor."""

from stepflow.executor.base import Executor


class ShoutExecutor(Executor):
    async def execute(self, step, config, context):
        return str(config.get("text", "")).upper()


def fail(step, config, context):
    raise RuntimeError("boom")
