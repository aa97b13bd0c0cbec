#!/usr/bin/env python3
"""Instruction templates for the digest model.

Both templates carry a `{DATA}` placeholder for the collected corpus. The
strict template asks for the final answer inside <output> tags so it can be
extracted; the direct template asks for the digest alone.
"""

from config import STRICT_MODE

DATA_PLACEHOLDER = "{DATA}"

STRICT_TEMPLATE = """
<example>
1. A summary of the current event in some detail, omitting any headline.

Source: hyperlink to the relevant source goes here
</example>

<data>
{DATA}
</data>

<instructions>
You are a substack blogger who keeps up on current events. \
Your task is to summarize the top current events of the day.
Please follow these steps carefully:

1. Analyze the <example> to understand my desired style and format. \
In <thinking_template> tags, summarize the key characteristics of my template.
2. Read the events in <data>. In <thinking_data> tags, summarize which events
   were mentioned by the most sources. Do not include events related to sports
   or pop culture, or the story mentioned by <example>.
3. In <output> tags, list the top 5 current events.
  a) Focus on important macro events
  b) Number each event in sequence
  c) Summaries should be exactly 200 words
  d) Each event should reference the most relevant link
  e) Summaries should follow <example> exactly
  f) Do not use markdown to format links

Be as clear, concise, and specific as possible.
</instructions>
"""

DIRECT_TEMPLATE = """
<data>
{DATA}
</data>

You are a substack blogger who keeps up on current events. Read the posts in
<data> and write a digest of the top 5 current events they mention.

- Focus on important macro events and skip duplicate stories
- Do not include events related to sports or pop culture
- Number each event in sequence
- Each summary should be about 200 words
- End each summary with one line "Source: " followed by the most relevant link
- Do not use markdown to format links

Reply with the digest only, without any preamble, headings or tags.
"""


def template_for(prompt_mode: str) -> str:
    return STRICT_TEMPLATE if prompt_mode == STRICT_MODE else DIRECT_TEMPLATE


def fill_template(template: str, corpus: str) -> str:
    """Insert the corpus into a template and trim surrounding whitespace."""
    return template.replace(DATA_PLACEHOLDER, corpus, 1).strip()
