"""Shared test helpers: fake clock, fake HTTP responses, page builders."""
import json
from unittest.mock import Mock


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float):
        self.now += seconds


def make_response(status_code: int = 200, text: str = ""):
    """Stand-in for requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


# =============================================================================
# Medium
# =============================================================================

def medium_article(index: int, title=None, claps="1.2K", content=None) -> str:
    """One Medium preview card with a hex post id derived from `index`."""
    title = title or f"Growing a startup, lesson {index}"
    content = content or "Lessons on leadership and growth from five years of founding companies."
    return f"""
    <article>
      <h2>{title}</h2>
      <a href="/@alice/growing-a-startup-{index:012x}?source=feed">Read more</a>
      <p>{content}</p>
      <span class="clapCount">{claps}</span>
      <span class="readingTime">7 min read</span>
      <time datetime="2024-03-01T10:00:00Z">Mar 1</time>
      <a class="tag" href="/tag/startups">Startups</a>
      <img src="https://miro.medium.com/v2/resize:fit:1400/1*cover{index}.png">
    </article>
    """


def medium_page(indexes, **kwargs) -> str:
    articles = "".join(medium_article(i, **kwargs) for i in indexes)
    return f"<html><body><main>{articles}</main></body></html>"


# =============================================================================
# Reddit
# =============================================================================

def reddit_child(reddit_id="abc123", **overrides):
    data = {
        "id": reddit_id,
        "title": "How we found product-market fit",
        "selftext": "Our growth strategy for the first year. #saas",
        "permalink": f"/r/startups/comments/{reddit_id}/how_we_found_pmf/",
        "url": "https://i.redd.it/xyz.jpg",
        "author": "founder42",
        "created_utc": 1700000000,
        "score": 57,
        "num_comments": 12,
        "link_flair_text": "Case Study",
        "subreddit": "startups",
        "upvote_ratio": 0.97,
        "is_self": False,
        "thumbnail": "self",
    }
    data.update(overrides)
    return data


def reddit_listing(children, after=None) -> str:
    return json.dumps({
        "kind": "Listing",
        "data": {
            "after": after,
            "children": [{"kind": "t3", "data": child} for child in children],
        },
    })
