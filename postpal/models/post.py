# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT
from datetime import datetime
from typing import List, Optional

class Post:
    """A blog post as it arrives from the message source, before rendering.

    ``id`` is the source message id. ``image_names`` is filled in by the post
    service from the classified media; on edit a caller may pre-seed it to hint
    the image format to use for every slot.
    """
    id: int
    title: str
    content: str
    date: datetime
    image_names: List[str]

    def __init__(self, id: int, content: str = "", title: str = "",
                 date: Optional[datetime] = None, image_names: Optional[List[str]] = None):
        self.id = id
        self.content = content or ""
        self.title = title or ""
        self.date = date if date is not None else datetime.now().astimezone()
        self.image_names = list(image_names) if image_names else []

    def copy(self) -> "Post":
        return Post(self.id, self.content, self.title, self.date, self.image_names)

    def __eq__(self, other):
        if not isinstance(other, Post):
            return NotImplemented
        return (self.id, self.title, self.content, self.date, self.image_names) == \
            (other.id, other.title, other.content, other.date, other.image_names)

    def __repr__(self):
        content_bytes = len(self.content.encode('utf-8'))
        return f"<Post id={self.id} title=\"{self.title}\" date=\"{self.date.isoformat()}\" images={len(self.image_names)}, contentBytes={content_bytes}>"
