import collections

from config import AUTO_SCROLL_MARGIN

ScrollDecision = collections.namedtuple('ScrollDecision', ['should_scroll', 'direction'])

NO_SCROLL = ScrollDecision(False, None)


def evaluate(pointer_px, viewport_bounds_px, margin=AUTO_SCROLL_MARGIN):
    """Decides whether a drag near the edge of the content area should scroll it.

    `viewport_bounds_px` is the (left, right) pixel extent of the visible
    timeline content. The pointer scrolls when it is within `margin` of an
    edge or past it; the direction is the nearer edge.
    """
    left, right = viewport_bounds_px
    from_left = pointer_px - left
    from_right = right - pointer_px
    if from_left < margin and from_left <= from_right:
        return ScrollDecision(True, 'left')
    if from_right < margin:
        return ScrollDecision(True, 'right')
    return NO_SCROLL

def scroll_days(decision, step_days):
    """Signed day offset a host applies to its viewport for one scroll step."""
    if not decision.should_scroll:
        return 0
    return -step_days if decision.direction == 'left' else step_days
