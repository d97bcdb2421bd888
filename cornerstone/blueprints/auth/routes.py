from flask import render_template, redirect, request, url_for, flash
from flask_login import login_user, logout_user, login_required, current_user
from urllib.parse import urlsplit

from cornerstone.extensions import db
from cornerstone.exceptions import CornerstoneException
from cornerstone.blueprints.auth import auth_bp
from cornerstone.blueprints.auth.forms import LoginForm, RegisterForm, DeleteAccountForm
from cornerstone.services.account_service import AccountService
from cornerstone.utils.audit import log_action
from cornerstone.utils.context import Operator

@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    # 如果已登录，直接跳到首页
    if current_user.is_authenticated:
        return redirect(url_for('main.index'))

    form = LoginForm()
    if form.validate_on_submit():
        user = AccountService(db.session).find_for_login(form.login.data.strip())

        # 1. 验证用户存在
        if user is None or user.is_deleted:
            flash('Invalid username/email or password.', 'danger')
            return redirect(url_for('auth.login'))

        # 2. 检查账号是否被锁定
        if user.is_locked():
            flash(f'This account is temporarily locked after {user.MAX_FAILED_ATTEMPTS} failed attempts. '
                  f'Try again in {user.LOCK_MINUTES} minutes.', 'danger')
            return redirect(url_for('auth.login'))

        # 3. 验证密码
        if not user.verify_password(form.password.data):
            user.record_failed_login()
            remaining_attempts = user.MAX_FAILED_ATTEMPTS - user.failed_login_attempts
            if remaining_attempts > 0:
                flash(f'Invalid username/email or password. Attempts remaining: {remaining_attempts}', 'danger')
            else:
                flash('Too many failed attempts. The account has been locked.', 'danger')
            log_action('auth', 'login_failed', {'login': form.login.data},
                       operator=Operator(user_id=user.id, username=user.username,
                                         ip_address=request.remote_addr))
            return redirect(url_for('auth.login'))

        # 4. 验证用户是否被封禁
        if not user.is_active_user:
            flash('This account has been disabled. Contact an administrator.', 'danger')
            return redirect(url_for('auth.login'))

        # 5. 执行登录
        login_user(user, remember=form.remember_me.data)
        user.reset_failed_attempts()
        log_action('auth', 'login_success', {'username': user.username})

        # 6. 处理 Next 跳转 (防止开放重定向攻击)
        next_page = request.args.get('next')
        if not next_page or urlsplit(next_page).netloc != '':
            next_page = url_for('main.index')

        flash(f'Welcome back, {user.display_name}.', 'success')
        return redirect(next_page)

    return render_template('auth/login.html', form=form)

@auth_bp.route('/logout')
@login_required
def logout():
    log_action('auth', 'logout', {'username': current_user.username})
    logout_user()
    flash('You have been signed out.', 'info')
    return redirect(url_for('auth.login'))

@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    """注册 (管理员: 工头/承包商；只读用户: 项目经理/财务/管理层)"""
    if current_user.is_authenticated:
        return redirect(url_for('main.index'))

    form = RegisterForm()
    if form.validate_on_submit():
        try:
            AccountService(db.session).register(
                username=form.username.data.strip(),
                email=form.email.data,
                password=form.password.data,
                full_name=form.full_name.data.strip(),
                role=form.role.data,
            )
        except CornerstoneException as e:
            flash(e.message, 'warning')
            return render_template('auth/register.html', form=form)

        flash('Account created. Please sign in.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('auth/register.html', form=form)

@auth_bp.route('/delete-account', methods=['GET', 'POST'])
@login_required
def delete_account():
    """永久删除当前账号 (历史流水保留，操作人置空)"""
    form = DeleteAccountForm()
    if form.validate_on_submit():
        user_id = current_user.id
        try:
            AccountService(db.session).delete_account(
                user_id, form.password.data, form.confirm_text.data
            )
        except CornerstoneException as e:
            flash(e.message, 'danger')
            return render_template('auth/delete_account.html', form=form)

        logout_user()
        flash('Your account has been permanently deleted.', 'info')
        return redirect(url_for('auth.login'))

    return render_template('auth/delete_account.html', form=form)
