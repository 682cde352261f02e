import json
import logging

from app.obs import logging as obs_logging


def _record(**extra) -> logging.LogRecord:
	record = logging.LogRecord("alumni.forums", logging.INFO, __file__, 1, "post_created", (), None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_formatter_redacts_member_text_and_binds_request():
	tokens = obs_logging.bind_context(request_id="req-7", user_id="u-1")
	try:
		line = json.loads(
			obs_logging.JSONLogFormatter().format(
				_record(topic_id="t-1", content="my phone is 0803...", reason="spam", tags=list(range(12)))
			)
		)
	finally:
		obs_logging.reset_context(tokens)

	assert line["msg"] == "post_created"
	assert line["request_id"] == "req-7"
	assert line["user_id"] == "u-1"
	assert line["topic_id"] == "t-1"
	assert line["content"] == "[redacted]"
	assert line["reason"] == "[redacted]"
	assert line["tags"][-1] == "+2 more"
	assert obs_logging.current_request_id() is None


def test_sampling_filter_keeps_warnings(monkeypatch):
	monkeypatch.setattr(obs_logging.settings, "obs_log_sampling_rate_info", 0.0)
	sampler = obs_logging.InfoSamplingFilter()
	assert sampler.filter(_record()) is False
	warning = _record()
	warning.levelno = logging.WARNING
	assert sampler.filter(warning) is True
