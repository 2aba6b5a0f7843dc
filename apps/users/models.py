from django.db import models
from django.contrib.auth import get_user_model

User = get_user_model()


class UserBookmark(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookmarks')
    # 한국관광공사 API 의 contentid (문자열)
    content_id = models.CharField(max_length=20)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'user_bookmark'
        unique_together = ('user', 'content_id')  # 중복 북마크 방지
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.user} - {self.content_id}"
