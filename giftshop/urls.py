"""
URL configuration for giftshop project.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from shop.api.views import graphql_view

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('shop.api.urls')),
    path('graphql/', graphql_view, name='graphql'),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
