import pytest

from branch.services.readme_scanner import count_mentions, detect_ai_tools, detect_services


@pytest.mark.unit
def test_ai_tools_are_counted_case_insensitively():
    readme = "Built with CLAUDE CODE.\nClaude wrote the tests, ChatGPT and chat-gpt reviewed them."

    tools = detect_ai_tools(readme)

    assert tools["Claude Code"] == 1
    # "Claude Code" also counts as a Claude mention
    assert tools["Claude"] == 2
    assert tools["ChatGPT"] == 2
    assert "GitHub Copilot" not in tools


@pytest.mark.unit
def test_services_match_domains_and_words():
    readme = (
        "Live at https://demo.vercel.app, mirrored on Vercel.\n"
        "Database: Supabase. Static assets on pages.dev.\n"
        "Rendering is done client side."
    )

    services = detect_services(readme)

    assert services == {"Vercel": 2, "Supabase": 1, "Cloudflare": 1}


@pytest.mark.unit
def test_empty_text_has_no_mentions():
    assert detect_ai_tools("") == {}
    assert detect_services(None) == {}
    assert count_mentions("nothing to see", {}) == {}
