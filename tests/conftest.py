"""Shared fixtures: a small Laravel project (users, posts, roles + pivot) as text and on disk."""
import sys
from pathlib import Path
from typing import Dict, List

import pytest

# Project root on sys.path so the flat modules import without installation
_root_dir = Path(__file__).parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

from parser_factory import make_source  # noqa: E402
from Schema.schema_model import SourceFile  # noqa: E402


USERS_MIGRATION = """<?php

use Illuminate\\Database\\Migrations\\Migration;
use Illuminate\\Database\\Schema\\Blueprint;
use Illuminate\\Support\\Facades\\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('users', function (Blueprint $table) {
            $table->id();
            $table->string('name');
            $table->string('email')->unique();
            $table->timestamp('email_verified_at')->nullable();
            $table->string('password');
            $table->rememberToken();
            $table->timestamps();
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('users');
    }
};
"""

POSTS_MIGRATION = """<?php

use Illuminate\\Database\\Migrations\\Migration;
use Illuminate\\Database\\Schema\\Blueprint;
use Illuminate\\Support\\Facades\\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('posts', function (Blueprint $table) {
            $table->id();
            $table->string('title');
            $table->foreignId('user_id')->constrained()->cascadeOnDelete();
            $table->timestamps();
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('posts');
    }
};
"""

ROLES_MIGRATION = """<?php

use Illuminate\\Database\\Migrations\\Migration;
use Illuminate\\Database\\Schema\\Blueprint;
use Illuminate\\Support\\Facades\\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('roles', function (Blueprint $table) {
            $table->id();
            $table->string('name');
            $table->timestamps();
        });

        Schema::create('role_user', function (Blueprint $table) {
            $table->foreignId('role_id')->constrained();
            $table->foreignId('user_id')->constrained();
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('role_user');
        Schema::dropIfExists('roles');
    }
};
"""

POST_MODEL = """<?php

namespace App\\Models;

use Illuminate\\Database\\Eloquent\\Model;
use Illuminate\\Database\\Eloquent\\Relations\\BelongsTo;

class Post extends Model
{
    // public function legacy() { return $this->hasOne(Legacy::class); }

    public function author(): BelongsTo
    {
        return $this->belongsTo(User::class, 'user_id');
    }
}
"""

USER_MODEL = """<?php

namespace App\\Models;

use Illuminate\\Foundation\\Auth\\User as Authenticatable;

class User extends Authenticatable
{
    protected $hidden = ['password', 'remember_token'];

    public function posts()
    {
        return $this->hasMany(Post::class);
    }

    public function roles()
    {
        return $this->belongsToMany(\\App\\Models\\Role::class);
    }

    public function getNameAttribute($value)
    {
        return ucfirst($value);
    }
}
"""

PROJECT_FILES: Dict[str, str] = {
    "database/migrations/2014_10_12_000000_create_users_table.php": USERS_MIGRATION,
    "database/migrations/2024_01_01_000000_create_posts_table.php": POSTS_MIGRATION,
    "database/migrations/2024_01_02_000000_create_roles_table.php": ROLES_MIGRATION,
    "app/Models/Post.php": POST_MODEL,
    "app/Models/User.php": USER_MODEL,
}


def wrap_up(body: str) -> str:
    """Wrap statements in a minimal anonymous-class migration up() method."""
    return (
        "<?php\n\nreturn new class extends Migration\n{\n"
        "    public function up(): void\n    {\n"
        f"{body}"
        "    }\n};\n"
    )


@pytest.fixture
def project_sources() -> List[SourceFile]:
    """Project files as classified SourceFiles, deliberately not in chronological order."""
    return [make_source(path, content) for path, content in reversed(list(PROJECT_FILES.items()))]


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """The fixture project on disk, plus files the scanner must ignore."""
    root = tmp_path / "blog"
    for path, content in PROJECT_FILES.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    ignored = {
        "vendor/laravel/framework/src/Model.php": "<?php class Vendor {}",
        "app/Http/Controllers/PostController.php": "<?php class PostController {}",
        "routes/web.php": "<?php // routes",
        "database/migrations/README.md": "not php",
    }
    for path, content in ignored.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root
