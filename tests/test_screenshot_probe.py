import asyncio

from subprobe.scanner.probes.screenshot_probe import (
    NullScreenshotAgent, PlaywrightScreenshotAgent, screenshot_filename,
)


def test_filename_is_filesystem_safe():
    assert screenshot_filename("a.example.com") == "a.example.com.png"
    assert screenshot_filename("https://a.example.com:8443/x?y") == "https_a.example.com_8443_x_y.png"


def test_duplicate_domains_get_distinct_files(tmp_path):
    agent = PlaywrightScreenshotAgent(screenshot_dir=str(tmp_path))
    paths = [agent.reserve_path("a.example.com") for _ in range(3)]
    assert [p.name for p in paths] == [
        "a.example.com.png", "a.example.com-2.png", "a.example.com-3.png",
    ]
    assert agent.reserve_path("b.example.com").name == "b.example.com.png"


def test_unlaunched_agent_reports_failure(tmp_path):
    agent = PlaywrightScreenshotAgent(screenshot_dir=str(tmp_path))
    assert asyncio.run(agent.capture("a.example.com")) == ("", False)


def test_null_agent():
    async def go():
        async with NullScreenshotAgent() as agent:
            return await agent.capture("a.example.com")

    assert asyncio.run(go()) == ("", False)
