# main.py
import uvicorn

from webdash.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from webdash.adapters.job_control_http import HttpJobControlAdapter
from webdash.adapters.job_status_http import HttpJobStatusClient
from webdash.adapters.logging_adapter import LoggingAdapter
from webdash.adapters.notifier_logging import LoggingNotifier
from webdash.adapters.result_sink_file import JsonFileResultSink
from webdash.adapters.result_sink_inmemory import InMemoryResultSink
from webdash.adapters.retry_tenacity import TenacityRetryAdapter
from webdash.adapters.web.fastapi import create_app
from webdash.core.config import SupervisorConfig
from webdash.core.logging_config import configure_logging
from webdash.core.managers.generation_tracker import GenerationTracker
from webdash.core.settings import app_settings, logger, set_logger


# main lives at the outermost layer (not in core)
# Instantiates all the concrete adapters
# Wires dependencies together
# Starts the application

def main():
    # Central logging configuration BEFORE injecting adapter so uvicorn adopts level/format
    configure_logging(app_settings.WEBDASH_LOG_LEVEL)
    set_logger(LoggingAdapter("webdash", app_settings.WEBDASH_LOG_LEVEL))
    app_settings.print_settings(logger)

    http_client = AioHttpClientAdapter(default_total=app_settings.WEBDASH_HTTP_TIMEOUT)
    if app_settings.WEBDASH_RESULT_FILE:
        result_sink = JsonFileResultSink(app_settings.WEBDASH_RESULT_FILE)
    else:
        result_sink = InMemoryResultSink()
    notifier = LoggingNotifier()
    config = SupervisorConfig.from_app_settings(app_settings)

    # Factory passed to web adapter keeps composition here
    def tracker_factory(client):
        retry_adapter = TenacityRetryAdapter(
            attempts=app_settings.WEBDASH_START_JOB_ATTEMPTS,
            wait_initial=app_settings.WEBDASH_START_JOB_RETRY_WAIT,
            wait_max=app_settings.WEBDASH_START_JOB_RETRY_MAX_WAIT,
        )
        status_client = HttpJobStatusClient(
            client,
            app_settings.WEBDASH_API_BASE_URL,
            timeout=app_settings.WEBDASH_HTTP_TIMEOUT,
        )
        job_control = HttpJobControlAdapter(
            client,
            app_settings.WEBDASH_API_BASE_URL,
            retry_port=retry_adapter,
            attempts=app_settings.WEBDASH_START_JOB_ATTEMPTS,
            wait_initial=app_settings.WEBDASH_START_JOB_RETRY_WAIT,
            wait_max=app_settings.WEBDASH_START_JOB_RETRY_MAX_WAIT,
        )
        return GenerationTracker(
            status_client=status_client,
            result_sink=result_sink,
            config=config,
            job_starter=job_control,
            notifier=notifier,
            max_finished=app_settings.WEBDASH_MAX_FINISHED_JOBS,
        )

    app = create_app(tracker_factory=tracker_factory, http_client=http_client)

    # Let uvicorn inherit existing logging (separate sinks & correlation ids)
    uvicorn.run(
        app,
        host=app_settings.WEBDASH_API_SERVER_HOST,
        port=app_settings.WEBDASH_API_SERVER_PORT,
        log_config=None,
        log_level=str(app_settings.WEBDASH_LOG_LEVEL).lower(),
    )


if __name__ == "__main__":
    main()
