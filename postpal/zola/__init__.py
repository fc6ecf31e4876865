# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from .images import classify_image
from .processor import (
    transform_markup,
    extract_title,
    remove_address_pattern,
    build_front_matter,
    render_post,
)
from .directory import PostDirectory
from .service import PostService
