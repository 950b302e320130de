from django.urls import path

from . import views

urlpatterns = [
    path('register', views.register, name='auth_register'),
    path('verify-otp', views.verify_otp, name='auth_verify_otp'),
    path('resend-otp', views.resend_otp, name='auth_resend_otp'),
    path('login', views.login, name='auth_login'),
    path('google', views.google_sign_in, name='auth_google'),
    path('callback', views.oauth_callback, name='auth_callback'),
    path('logout', views.logout, name='auth_logout'),
    path('current-user', views.current_user, name='auth_current_user'),
    path('users', views.list_users, name='auth_users'),
    path('forgot-password', views.forgot_password, name='auth_forgot_password'),
    path('reset-password', views.reset_password, name='auth_reset_password'),

    # Admin accounts
    path('admin/register', views.admin_register, name='auth_admin_register'),
    path('admin/login', views.admin_login, name='auth_admin_login'),
    path('admin/forgot-password', views.admin_forgot_password, name='auth_admin_forgot_password'),
    path('admin/reset-password', views.admin_reset_password, name='auth_admin_reset_password'),
]
